#!/usr/bin/env python3
from __future__ import annotations
import os, sys, json, argparse
from app.core.config import settings
from app.core.logging import configure_logging
from app.integrations.shopify.shopify_client import ShopifyClient, find_duplicate_services


'''
运维小脚本：把本应用的 CarrierService 注册 / 更新到店铺（部署或切环境时跑一次）
    - 回调地址取 --callback，否则用 SHOPIFY_APP_URL 拼出的 settings.carrier_callback_url
    - --list 只列出已注册的服务（顺带提示重名）
    - --delete <id> 删除指定服务
    - 用法：
    python scripts/register_carrier_service.py \
    --shop demo.myshopify.com \
    --callback "https://<your-public-domain>/api/v1/carrier/callback"
'''
def main():
    ap = argparse.ArgumentParser(description="Ensure the Shopify CarrierService for range-based rates.")
    ap.add_argument("--shop", help="myshopify domain (default: SHOPIFY_SHOP)")
    ap.add_argument("--name", default=settings.CARRIER_SERVICE_NAME, help="CarrierService name")
    ap.add_argument("--callback", help="Public HTTPS callback URL (default: SHOPIFY_APP_URL + API_PREFIX + /carrier/callback)")
    ap.add_argument("--list", action="store_true", help="Only list registered carrier services")
    ap.add_argument("--delete", metavar="ID", help="Delete the carrier service with this id")
    args = ap.parse_args()

    configure_logging()
    client = ShopifyClient(shop=args.shop)

    if args.list:
        services = client.list_carrier_services()
        result = {"carriers": services, "duplicates": find_duplicate_services(services)}
        print(json.dumps(result, ensure_ascii=False, indent=2))
        return

    if args.delete:
        client.delete_carrier_service(args.delete)
        print(json.dumps({"deleted": args.delete}, ensure_ascii=False))
        return

    callback = args.callback or os.getenv("CARRIER_CALLBACK_URL") or settings.carrier_callback_url
    if not callback:
        print("ERROR: provide --callback or set SHOPIFY_APP_URL", file=sys.stderr)
        sys.exit(2)
    if not callback.startswith("https://"):
        print(f"WARNING: Shopify only calls https callbacks, got {callback}", file=sys.stderr)

    result = client.ensure_carrier_service(args.name, callback)
    print(json.dumps(result, ensure_ascii=False, indent=2))

if __name__ == "__main__":
    main()
