from fastapi import APIRouter, Depends

from app.integrations.countries.country_catalog import CountryCatalog, get_country_catalog


router = APIRouter(tags=["countries"])


# 后台国家下拉；数据来自进程内 TTL 缓存，拉取失败时返回兜底列表
@router.get("/countries")
def list_countries(catalog: CountryCatalog = Depends(get_country_catalog)):
    return {"countries": catalog.list_options()}
