# main.py
import asyncio
import sys
import time

import questionary
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from spreadhunter.arbitrage import ArbitrageEngine
from spreadhunter.config import load_config
from spreadhunter.errors import ArbitrageError, NoOpportunityError
from spreadhunter.exchanges import build_adapters, shutdown_adapters
from spreadhunter.execution import SimulationService
from spreadhunter.ledger import TradeLedger
from spreadhunter.logger import AsyncAuditLogger, setup_console_logger
from spreadhunter.presets import CUSTOM_LABEL, resolve_symbols
from spreadhunter.risk_engine import RiskEngine
from spreadhunter.scanner import MultiSymbolScanner
from spreadhunter.spread_scanner import SpreadScanner

MODE_ORDER_BOOK = "Order book arbitrage (depth, fees, slippage)"
MODE_TICKER = "Ticker spread scan (fast, best bid/ask only)"
MODE_SIMULATE = "Simulate one trade (best profitable pair per symbol)"

# --- UI HELPER FUNCTIONS ---

def startup_selection(config):
    """Interactive CLI to pick scan mode, symbols and exchanges."""
    print("\n🚀 SPREAD HUNTER \n")
    mode = questionary.select("Scan mode:", choices=[MODE_ORDER_BOOK, MODE_TICKER, MODE_SIMULATE]).ask()
    if mode is None:
        sys.exit()

    preset = questionary.select(
        "Symbols to scan:", choices=list(config['presets'].keys()) + [CUSTOM_LABEL]
    ).ask()
    if preset is None:
        sys.exit()

    raw_symbols = None
    if preset == CUSTOM_LABEL:
        raw_symbols = questionary.text("Symbols (comma separated, e.g. BTC/USDT,ETH/USDT):").ask()
    symbols, label = resolve_symbols(raw_symbols, None if raw_symbols else preset, config['presets'])

    amount = None
    if mode == MODE_SIMULATE:
        raw_amount = questionary.text("Trade amount (blank for the configured default):").ask()
        if raw_amount:
            try:
                amount = float(raw_amount)
            except ValueError:
                print(f"Invalid amount: {raw_amount}. Exiting.")
                sys.exit()

    choices = [
        questionary.Choice(f"{ex_cfg.get('name', ex_id)} ({ex_id})", value=ex_id, checked=True)
        for ex_id, ex_cfg in config['exchanges'].items()
        if (ex_cfg or {}).get('enabled', True)
    ]
    exchanges = questionary.checkbox("Select Exchanges to Activate:", choices=choices).ask()
    if not exchanges or len(exchanges) < 2:
        print("Need at least 2 exchanges for arbitrage. Exiting.")
        sys.exit()
    return mode, symbols, label, exchanges, amount


def _order_book_table(scan):
    table = Table(title="📈 Order Book Opportunities")
    table.add_column("Symbol", style="cyan")
    table.add_column("Buy", style="magenta")
    table.add_column("Sell", style="magenta")
    table.add_column("Amount", justify="right")
    table.add_column("Net Profit", justify="right")
    table.add_column("Net %", justify="right")
    table.add_column("Ex.", justify="right")

    for r in scan.top_opportunities:
        opp = r.best_opportunity
        color = "green" if opp.is_profitable else "red"
        table.add_row(
            r.symbol, opp.buy_exchange, opp.sell_exchange,
            f"{r.trade_amount_base:,.4f}",
            f"[{color}]${opp.net_profit:,.4f}[/{color}]",
            f"[{color}]{opp.net_profit_percentage:.3f}%[/{color}]",
            str(r.exchanges_responded),
        )
    return table


def _ticker_table(scan):
    table = Table(title="📡 Ticker Spreads")
    table.add_column("Symbol", style="cyan")
    table.add_column("Buy", style="magenta")
    table.add_column("Sell", style="magenta")
    table.add_column("Gross %", justify="right")
    table.add_column("Maker %", justify="right")
    table.add_column("Taker %", justify="right")
    table.add_column("Hybrid %", justify="right")

    def fmt(value):
        color = "green" if value > 0 else "red"
        return f"[{color}]{value:.3f}%[/{color}]"

    for r in scan.top_opportunities:
        s = r.best_spread
        table.add_row(
            r.symbol, s.buy_exchange, s.sell_exchange,
            f"{s.gross_spread_percent:.3f}%",
            fmt(s.maker.percent), fmt(s.taker.percent), fmt(s.hybrid.percent),
        )
    return table


def generate_dashboard(mode, scan, summary, label):
    """
    Creates the Rich Console Dashboard layout.
    Shows the top opportunities of the last cycle and the running simulated P&L.
    """
    if scan is None:
        main_panel = Panel("Waiting for the first scan...")
    elif mode == MODE_ORDER_BOOK:
        main_panel = Panel(_order_book_table(scan))
    else:
        main_panel = Panel(_ticker_table(scan))

    pl_table = Table(title="💰 Simulated P&L")
    pl_table.add_column("Metric", style="magenta")
    pl_table.add_column("Value", justify="right")
    pl_table.add_row("Opportunities seen", str(summary.total_opportunities_detected))
    pl_table.add_row("Simulated trades", str(summary.total_simulated_trades))
    pl_table.add_row("Cumulative profit", f"${summary.cumulative_profit_usd:,.4f}")
    pl_table.add_row("Avg per trade", f"${summary.average_profit_per_trade:,.4f}")
    pl_table.add_row("Win rate", f"{summary.win_rate:.1f}%")

    layout = Layout()
    layout.split_column(
        Layout(name="top"),
        Layout(name="bottom")
    )
    layout["top"].split_row(
        Layout(main_panel, ratio=3),
        Layout(Panel(pl_table), ratio=1)
    )

    if scan is None:
        footer_text = f"[bold gold1]{label.upper()}[/bold gold1]"
    else:
        footer_text = (
            f"[bold gold1]{label.upper()} | {scan.symbols_scanned} symbols | "
            f"{scan.symbols_with_data} with data | {scan.scan_duration_ms:,.0f}ms[/bold gold1]"
        )
    layout["bottom"].update(Panel(footer_text, style="white on blue"))
    layout["bottom"].size = 3

    return layout

# --- MAIN CONTROLLER ---

class SpreadHunterBot:
    def __init__(self, config, mode, symbols, label, selected_exchanges, amount=None):
        self.config = config
        self.mode = mode
        self.symbols = symbols
        self.label = label
        self.amount = amount
        self.config['exchanges'] = {k: v for k, v in self.config['exchanges'].items() if k in selected_exchanges}

        self.logger = setup_console_logger("SpreadHunter", self.config['system']['log_level'])
        self.audit_log = AsyncAuditLogger(self.config['audit']['trade_log'])

        self.adapters = build_adapters(self.config, self.logger)
        self.risk = RiskEngine(self.config, self.logger)
        self.engine = ArbitrageEngine(self.adapters, self.config, self.logger, risk=self.risk)
        self.spreads = SpreadScanner(self.adapters, self.config, self.logger, risk=self.risk)
        self.scanner = MultiSymbolScanner(self.engine, self.spreads, self.config, self.logger)
        self.ledger = TradeLedger.from_config(self.config)
        self.simulator = SimulationService(self.engine, self.ledger, self.logger, audit_logger=self.audit_log)
        self.refresh = self.config['system']['refresh_seconds']

    async def scan_once(self):
        if self.mode == MODE_TICKER:
            return await self.scanner.scan_tickers(self.symbols)

        scan = await self.scanner.scan_order_books(self.symbols)
        self.simulator.log_scan(scan)
        return scan

    async def simulate_once(self):
        """Takes the best profitable pair for each symbol once, then prints the ledger."""
        for symbol in self.symbols:
            try:
                await self.simulator.simulate(symbol, self.amount)
            except NoOpportunityError as e:
                self.logger.warning(f"⚠️ {e}")
            except ArbitrageError as e:
                self.logger.error(f"❌ {symbol}: {e}")

        summary = self.ledger.get_pl_summary()
        trades = Table(title="🔵 Simulated Trades")
        trades.add_column("Trade", style="cyan")
        trades.add_column("Symbol")
        trades.add_column("Buy", style="magenta")
        trades.add_column("Sell", style="magenta")
        trades.add_column("Est. Profit", justify="right")
        for t in self.ledger.get_trades():
            opp = t.opportunity
            trades.add_row(t.id, t.symbol, opp.buy_exchange, opp.sell_exchange,
                           f"${opp.net_profit:,.4f} ({opp.net_profit_percentage:.3f}%)")
        console = Console()
        console.print(trades)
        console.print(f"[bold]{summary.total_simulated_trades} trade(s), cumulative ${summary.cumulative_profit_usd:,.4f}[/bold]")

    async def run(self):
        try:
            await self.audit_log.start()
            if self.mode == MODE_SIMULATE:
                await self.simulate_once()
                return
            scan = None
            console = Console()
            with Live(console=console, refresh_per_second=4) as live:
                while True:
                    start_tick = time.time()
                    try:
                        scan = await self.scan_once()
                    except ArbitrageError as e:
                        self.logger.error(f"❌ Scan failed: {e}")
                    live.update(generate_dashboard(self.mode, scan, self.ledger.get_pl_summary(), self.label))

                    elapsed = time.time() - start_tick
                    await asyncio.sleep(max(0, self.refresh - elapsed))
        finally:
            print("Shutting down resources...")
            await self.audit_log.stop()
            await shutdown_adapters(self.adapters, self.logger)


if __name__ == "__main__":
    try:
        raw_conf = load_config()
        sel_mode, sel_symbols, sel_label, sel_exs, sel_amount = startup_selection(raw_conf)
        bot = SpreadHunterBot(raw_conf, sel_mode, sel_symbols, sel_label, sel_exs, amount=sel_amount)
        try:
            import uvloop
            asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
        except ImportError:
            pass
        asyncio.run(bot.run())
    except ArbitrageError as e:
        print(f"❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n🛑 Scanner Stopped by User.")
        sys.exit()
