"""
Output sinks for feed records.

ConsoleSink prints colored lines to the terminal:

    <feed text> | HH:MM:SS @ 0xabcd | 0x1234

JsonFeedLogSink appends one JSON object per record to logs/Feed_Logs/.
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO
from zoneinfo import ZoneInfo

from colorama import Fore, Style, just_fix_windows_console
from web3 import Web3

from monitor_logging.logger_manager import setup_module_logger
from shared.constants import DEFAULT_DISPLAY_TIMEZONE, DEFAULT_SHORT_HASH_LENGTH
from shared.serialization_utils import dumps
from shared.types import ColorTag, FeedRecord

COLOR_CODES: dict[ColorTag, str] = {
    ColorTag.POSITIVE: Fore.GREEN,
    ColorTag.NEGATIVE: Fore.LIGHTRED_EX,
    ColorTag.INFO: Fore.CYAN,
    ColorTag.WARNING: Fore.YELLOW,
}


class FeedSink(Protocol):
    def emit(self, record: FeedRecord) -> None: ...


class ConsoleSink:
    def __init__(
        self,
        timezone: str = DEFAULT_DISPLAY_TIMEZONE,
        short_hash_length: int = DEFAULT_SHORT_HASH_LENGTH,
        stream: TextIO | None = None,
        use_color: bool = True,
    ) -> None:
        self._tz = ZoneInfo(timezone)
        self._short = short_hash_length
        self._stream = stream or sys.stdout
        self._use_color = use_color
        if use_color:
            just_fix_windows_console()

    def render(self, record: FeedRecord) -> str:
        clock = record.timestamp.astimezone(self._tz).strftime("%H:%M:%S")
        try:
            pool = Web3.to_checksum_address(record.pool_address)
        except ValueError:
            pool = record.pool_address
        line = (
            f"{record.text} | {clock} @ {pool[:self._short]}"
            f" | {record.tx_hash[:self._short]}"
        )
        if not self._use_color:
            return line
        return f"{COLOR_CODES[record.color]}{line}{Style.RESET_ALL}"

    def emit(self, record: FeedRecord) -> None:
        print(self.render(record), file=self._stream, flush=True)


class JsonFeedLogSink:
    def __init__(self, log_file: str = "feed.jsonl") -> None:
        self._logger = setup_module_logger(
            "feed_records", log_file, module_folder="Feed_Logs", use_raw_formatter=True
        )

    @staticmethod
    def to_payload(record: FeedRecord) -> dict:
        return {
            "timestamp": record.timestamp,
            "chain_id": record.chain_id,
            "pool_address": record.pool_address,
            "tx_hash": record.tx_hash,
            "mode": record.mode,
            "color": record.color,
            "price": record.price,
            "text": record.text,
        }

    def emit(self, record: FeedRecord) -> None:
        self._logger.info(dumps(self.to_payload(record)))
