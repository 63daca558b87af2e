# spreadhunter/logger.py
import asyncio
import logging
import os
import sys
from typing import Any, List, Optional

import aiofiles
from aiocsv import AsyncWriter

from .models import SimulatedTrade

AUDIT_HEADER = [
    'datetime', 'trade_id', 'symbol', 'buy_exchange', 'sell_exchange', 'amount',
    'buy_price', 'sell_price', 'net_profit', 'net_profit_percentage', 'status',
]


def trade_row(trade: SimulatedTrade) -> List[Any]:
    opp = trade.opportunity
    return [
        trade.datetime,
        trade.id,
        trade.symbol,
        opp.buy_exchange,
        opp.sell_exchange,
        opp.amount,
        opp.buy_price,
        opp.sell_price,
        round(opp.net_profit, 8),
        round(opp.net_profit_percentage, 6),
        trade.status.value,
    ]


class AsyncAuditLogger:
    """
    Non-blocking CSV audit trail for simulated trades.
    Decouples disk I/O from the scan loop using an asyncio Queue.
    """
    def __init__(self, filepath: str):
        self.filepath = filepath
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def start(self):
        """
        Creates the log file (with a header row if it is new) and starts the background writer.
        """
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if not os.path.exists(self.filepath) or os.path.getsize(self.filepath) == 0:
            async with aiofiles.open(self.filepath, mode='a', newline='') as f:
                writer = AsyncWriter(f, dialect='unix')
                await writer.writerow(AUDIT_HEADER)

        self._worker_task = asyncio.create_task(self._writer_worker())

    async def log_trade(self, data: List[Any]):
        """
        Non-blocking call to add a row to the queue.
        """
        await self._queue.put(data)

    async def log_simulated_trade(self, trade: SimulatedTrade):
        await self.log_trade(trade_row(trade))

    async def _writer_worker(self):
        """
        Background consumer that writes to disk.
        """
        while True:
            row = await self._queue.get()
            try:
                async with aiofiles.open(self.filepath, mode='a', newline='') as f:
                    writer = AsyncWriter(f, dialect='unix')
                    await writer.writerow(row)
            except Exception as e:
                # Report and keep going; the scan loop must not die on a disk error
                print(f"LOGGING FAILURE: {e}", file=sys.stderr)
            finally:
                self._queue.task_done()

    async def stop(self):
        """Flushes queued rows, then stops the writer."""
        if self._worker_task is None:
            return
        await self._queue.join()
        self._worker_task.cancel()
        try:
            await self._worker_task
        except asyncio.CancelledError:
            pass
        self._worker_task = None


def setup_console_logger(name: str, level: str):
    """
    Sets up the standard Python logger for console output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter('%(asctime)s | %(levelname)s | %(module)s | %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
