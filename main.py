import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from giftplanner import GiftResolver, media


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve a t.me/nft gift link (or a catalog gift name) into its attributes."
    )
    parser.add_argument("value", help="gift link such as t.me/nft/InstantRamen-42")
    parser.add_argument(
        "--name",
        action="store_true",
        help="treat VALUE as a catalog gift name instead of a link",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    return parser


async def _resolve(value: str, by_name: bool) -> dict:
    resolver = GiftResolver.create()
    if by_name:
        resolution = await resolver.resolve_name(value)
    else:
        resolution = await resolver.resolve_link(value)
    record = resolution.record
    payload = {
        "state": resolution.state.value,
        "status": resolution.status,
        "record": record.as_dict() if record else None,
        "gift_id": resolution.gift_id,
    }
    if record:
        payload["image_url"] = media.gift_image_url(record.gift, record.model, resolution.gift_id)
    return payload


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    payload = asyncio.run(_resolve(args.value, args.name))
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0 if payload["record"] else 1


if __name__ == "__main__":
    sys.exit(main())
