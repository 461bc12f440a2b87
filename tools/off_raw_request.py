from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config.constants import API_READ_TIMEOUT_DEFAULT, OFF_API_BASE_URL  # noqa: E402
from domain.exceptions import OpenFoodFactsError  # noqa: E402
from infrastructure.api.openfoodfacts_client import OpenFoodFactsClient  # noqa: E402
from infrastructure.api.transport import RequestsTransport  # noqa: E402

load_dotenv(dotenv_path=ROOT / ".env")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("must be an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch raw Open Food Facts payloads.",
    )
    parser.add_argument(
        "--base-url",
        default=OFF_API_BASE_URL,
        help=f"API endpoint, HTTPS only (default: {OFF_API_BASE_URL}).",
    )
    parser.add_argument(
        "--read-timeout",
        type=float,
        default=API_READ_TIMEOUT_DEFAULT,
        help="Read timeout in seconds.",
    )
    parser.add_argument(
        "--out",
        dest="out_path",
        default=None,
        help="Write the JSON result to this file instead of stdout.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests.")

    commands = parser.add_subparsers(dest="command", required=True)

    product = commands.add_parser("product", help="Look up a product by barcode.")
    product.add_argument("barcode")

    search = commands.add_parser("search", help="Search products by text.")
    search.add_argument("terms")
    search.add_argument("--page", type=_positive_int, default=None)
    search.add_argument("--page-size", type=_positive_int, default=None)
    search.add_argument(
        "--fields",
        default=None,
        help="Comma separated product fields to keep (e.g. code,product_name).",
    )

    taxonomy = commands.add_parser("taxonomy", help="Fetch a taxonomy by name.")
    taxonomy.add_argument("name")

    insight = commands.add_parser("insight", help="Fetch random Robotoff questions.")
    insight.add_argument("--count", type=_positive_int, default=1)
    insight.add_argument("--lang", default=None)

    return parser


def run_command(args: argparse.Namespace, client: OpenFoodFactsClient) -> object:
    if args.command == "product":
        return client.get_product(args.barcode)
    if args.command == "search":
        criteria: dict = {"search_terms": args.terms}
        if args.page:
            criteria["page"] = args.page
        if args.page_size:
            criteria["pageSize"] = args.page_size
        if args.fields:
            criteria["fields"] = [f.strip() for f in args.fields.split(",") if f.strip()]
        return client.search_products(criteria)
    if args.command == "taxonomy":
        return client.get_taxonomy(args.name)
    return client.get_random_insight(count=args.count, lang=args.lang)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        with OpenFoodFactsClient(
            base_url=args.base_url,
            transport=RequestsTransport(read_timeout=args.read_timeout),
        ) as client:
            result = run_command(args, client)
    except OpenFoodFactsError as exc:
        print(f"{exc.kind.value}: {exc.message}", file=sys.stderr)
        return 1

    body = json.dumps(result, indent=2, ensure_ascii=False)
    if args.out_path:
        out_path = Path(args.out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(body, encoding="utf-8")
    else:
        sys.stdout.write(body + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
