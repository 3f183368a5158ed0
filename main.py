"""
main.py
CLI entry point for the Freight Cost Calculator.

Usage:
  python main.py demo
  python main.py calculate --request request.json [--rates data/rates.json] [--historical]
  python main.py api [--metrics]
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Optional

# Ensure project root is on sys.path when running directly
sys.path.insert(0, str(Path(__file__).parent))

# ── Sample route shipped with data/rates.json ─────────────────────────────────
DEMO_REQUEST = {
    "pol": "BUSAN",
    "pod": "QINGDAO",
    "destination_id": "OSH",
    "weight": 5000,
    "reference_date": "2025-06-01",
    "include_dp": True,
}


# Demo mode

def run_demo(rates_path: Optional[str] = None) -> None:
    from rich import box
    from rich.console import Console
    from rich.table import Table

    from calculation_engine.engine import CalculationEngine
    from config.settings import settings
    from guardrails.guardrail_layer import GuardrailLayer
    from query_processor.models import CostCategory
    from query_processor.parser import RequestParser
    from rate_store.json_store import JSONRateStore

    console = Console()
    console.print("\n[bold blue]═══ FREIGHT COST CALCULATOR — DEMO ═══[/bold blue]\n")

    store     = JSONRateStore(rates_path)
    guardrail = GuardrailLayer()
    engine    = CalculationEngine(store.snapshot, guardrail=guardrail)
    request   = RequestParser().from_payload(DEMO_REQUEST)

    console.print(f"  [bold]Route:[/bold]  {request.pol} → {request.pod} → {request.destination_id}")
    console.print(f"  [bold]Weight:[/bold] {request.weight:,.0f} kg")
    console.print(f"  [bold]Date:[/bold]   {request.reference_date}")
    console.print(f"  [bold]Rates:[/bold]  {store.path}")
    console.print()

    result    = engine.calculate(request)
    gr_report = guardrail.validate_output(result)

    cur = settings.currency
    table = Table(
        title=f"Cost options — {request.pol} → {request.destination_id}",
        box=box.ROUNDED,
        show_lines=True,
    )
    table.add_column("Agent",        style="cyan", width=14)
    table.add_column("Path",         width=9)
    table.add_column("Sea leg",      width=16)
    table.add_column("Sea + local",  justify="right", width=12)
    table.add_column("DTHC",         justify="right", width=9)
    table.add_column("Inland",       justify="right", width=10)
    table.add_column("Surcharge",    justify="right", width=10)
    table.add_column("DP",           justify="right", width=8)
    table.add_column(f"Total ({cur})", justify="right", style="green", width=12)

    for b in result.breakdowns:
        best = b is result.best
        total = f"{b.total:,.2f}"
        if best:
            total = f"[bold]{total} ★[/bold]"
        elif b.expired:
            total = f"[red]{total}[/red]"
        dp = b.component(CostCategory.DP.value)
        table.add_row(
            b.label,
            b.kind.value,
            b.sea_freight_id or "[red]none[/red]",
            f"{b.sea_freight + b.local_charge:,.2f}",
            f"{b.dthc:,.2f}",
            f"{b.inland:,.2f}",
            f"{b.weight_surcharge:,.2f}",
            f"{dp.contribution:,.2f}" if dp is not None else "—",
            total,
        )
    console.print(table)

    if result.best is None:
        console.print("\n  [red]No route available.[/red]")
    else:
        console.print(f"\n  [bold]Cheapest:[/bold] {result.best.label} ({result.best.kind.value}) "
                      f"{cur} {result.best.total:,.2f}")

    console.print(f"  [bold]Quality Score:[/bold] {gr_report['quality_score']:.0%}")
    status_str = "[green]PASSED[/green]" if gr_report["passed"] else "[red]FLAGGED[/red]"
    console.print(f"  [bold]Guardrail Status:[/bold] {status_str}")
    for w in result.warnings:
        console.print(f"  [yellow]⚠  {w}[/yellow]")
    console.print()


# Calculate mode

def run_calculate(request_path: str, rates_path: Optional[str] = None, historical: bool = False) -> int:
    from calculation_engine.engine import CalculationEngine
    from calculation_engine.exceptions import InvalidRequest
    from query_processor.parser import RequestParser
    from rate_store.json_store import JSONRateStore

    with open(request_path, encoding="utf-8") as f:
        payload = json.load(f)

    store = JSONRateStore(rates_path)
    try:
        request = RequestParser().from_payload(payload)
        if historical:
            if request.reference_date is None:
                raise InvalidRequest(["'reference_date' is required when historical is set"])
            engine = CalculationEngine(store.snapshot_as_of(request.reference_date), is_historical=True)
        else:
            engine = CalculationEngine(store.snapshot)
        result = engine.calculate(request)
    except InvalidRequest as exc:
        print(json.dumps({"success": False, "errors": exc.issues}, indent=2))
        return 2

    print(json.dumps({"success": True, **result.to_dict()}, indent=2))
    return 0


# ── API mode ──────────────────────────────────────────────────────────────────

def run_api(metrics: bool = False) -> None:
    import uvicorn
    from config.settings import settings
    if metrics or settings.metrics_enabled:
        from monitoring import start_metrics_server
        start_metrics_server(settings.metrics_port)
    uvicorn.run(
        "api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Freight cost calculator")
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="Price the sample route and print a table")
    demo.add_argument("--rates", help="Rate snapshot JSON (default: RATE_SNAPSHOT_PATH)")

    calc = sub.add_parser("calculate", help="Run one request from a JSON file, print JSON")
    calc.add_argument("--request", required=True, help="Request JSON file")
    calc.add_argument("--rates", help="Rate snapshot JSON (default: RATE_SNAPSHOT_PATH)")
    calc.add_argument("--historical", action="store_true",
                      help="Use the rate tables as of the request's reference_date")

    api = sub.add_parser("api", help="Start the HTTP API")
    api.add_argument("--metrics", action="store_true", help="Also start the Prometheus exporter")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "demo":
        run_demo(args.rates)
    elif args.command == "calculate":
        return run_calculate(args.request, args.rates, args.historical)
    elif args.command == "api":
        run_api(args.metrics)
    return 0


if __name__ == "__main__":
    sys.exit(main())
