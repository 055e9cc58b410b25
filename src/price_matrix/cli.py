from __future__ import annotations

import argparse
from decimal import Decimal
from pathlib import Path

from .config import Settings, load_configuration, save_configuration
from .errors import ConfigurationError, IngestError, MatrixNotConfiguredError, ResolutionError
from .ingest import import_matrix_file
from .logging_setup import setup_logging
from .matrix import normalize_currency_code
from .output import write_errors_csv, write_matrix_csv, write_report_json
from .price import Price, to_decimal
from .shipping import MATRIX_TABLE_HEADER, Order, OrderItem, PriceMatrixShippingMethod, default_configuration


def _amount(value: str) -> Decimal:
    number = to_decimal(value)
    if not number.is_finite():
        raise ValueError(f"not a finite amount: {value}")
    return number


def _print_errors(errors) -> None:
    print("errors=")
    for err in errors:
        print(f"- {err} [{err.code.value}]")


def _cmd_validate(args: argparse.Namespace) -> int:
    result = import_matrix_file(args.source, args.currency)
    if args.errors_csv:
        write_errors_csv(result.errors, args.errors_csv)
        print(f"wrote_errors_csv={args.errors_csv}")
    if args.report_json:
        write_report_json(args.report_json, result, source_file=Path(args.source).name)
        print(f"wrote_report={args.report_json}")
    if not result.ok:
        _print_errors(result.errors)
        return 1
    print(f"tiers={len(result.matrix.tiers)}")
    print(f"currency_code={result.matrix.currency_code}")
    return 0


def _load_or_default(path: str) -> dict:
    if Path(path).exists():
        return load_configuration(path)
    return default_configuration()


def _cmd_import(args: argparse.Namespace) -> int:
    config = _load_or_default(args.config)
    if args.rate_label:
        config["rate_label"] = args.rate_label
    if not config.get("rate_label"):
        print("error=a rate label is required (--rate-label)")
        return 2

    method = PriceMatrixShippingMethod(config)
    errors = method.submit_matrix_file(args.source, args.currency, delete_source=args.delete_source)
    if errors:
        _print_errors(errors)
        return 1

    save_configuration(method.configuration, args.config)
    print(f"wrote_config={args.config}")
    print(f"tiers={len(method.matrix.tiers)}")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    method = PriceMatrixShippingMethod(load_configuration(args.config))
    print(f"rate_label={method.configuration['rate_label']}")
    if method.matrix is None:
        print("price_matrix=none")
        return 0
    print(f"currency_code={method.matrix.currency_code}")
    print(",".join(MATRIX_TABLE_HEADER))
    for row in method.current_values():
        print(",".join(row))
    return 0


def _cmd_quote(args: argparse.Namespace) -> int:
    method = PriceMatrixShippingMethod(load_configuration(args.config), check_currency=args.check_currency)
    order = Order(items=[OrderItem(category=None, total=Price(args.amount, args.currency))], currency_code=args.currency)
    try:
        rates = method.calculate_rates(order)
    except (ResolutionError, MatrixNotConfiguredError) as exc:
        print(f"error={exc}")
        return 1
    for rate in rates:
        print(f"rate={rate.service.label}")
        print(f"amount={rate.amount.amount}")
        print(f"currency_code={rate.amount.currency_code}")
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    config = load_configuration(args.config)
    if config.get("price_matrix") is None:
        print("error=no price matrix stored")
        return 1
    write_matrix_csv(config["price_matrix"], args.output_csv)
    print(f"wrote_matrix_csv={args.output_csv}")
    return 0


def build_parser(settings: Settings | None = None) -> argparse.ArgumentParser:
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(prog="price-matrix", description="Shipping price matrix CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate a price matrix CSV/XLSX file")
    validate.add_argument("source")
    validate.add_argument("--currency", type=normalize_currency_code, default=settings.default_currency)
    validate.add_argument("--errors-csv", default=None)
    validate.add_argument("--report-json", default=None)
    validate.set_defaults(func=_cmd_validate)

    import_cmd = sub.add_parser("import", help="Replace the stored price matrix with a file's contents")
    import_cmd.add_argument("source")
    import_cmd.add_argument("--config", default="config/shipping/price_matrix.json")
    import_cmd.add_argument("--currency", type=normalize_currency_code, default=settings.default_currency)
    import_cmd.add_argument("--rate-label", default=None)
    import_cmd.add_argument("--delete-source", action="store_true")
    import_cmd.set_defaults(func=_cmd_import)

    show = sub.add_parser("show", help="Print the stored price matrix")
    show.add_argument("--config", default="config/shipping/price_matrix.json")
    show.set_defaults(func=_cmd_show)

    quote = sub.add_parser("quote", help="Resolve the shipping cost for an order subtotal")
    quote.add_argument("amount", type=_amount)
    quote.add_argument("--config", default="config/shipping/price_matrix.json")
    quote.add_argument("--currency", type=normalize_currency_code, default=settings.default_currency)
    quote.add_argument(
        "--no-currency-check",
        dest="check_currency",
        action="store_false",
        default=settings.strict_currency,
    )
    quote.set_defaults(func=_cmd_quote)

    export = sub.add_parser("export", help="Write the stored price matrix back to CSV")
    export.add_argument("output_csv")
    export.add_argument("--config", default="config/shipping/price_matrix.json")
    export.set_defaults(func=_cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    settings = Settings.from_env()
    parser = build_parser(settings)
    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else settings.log_level)
    try:
        return args.func(args)
    except (ConfigurationError, IngestError) as exc:
        print(f"error={exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
