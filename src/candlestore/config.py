"""Configuration system using pydantic-settings with environment variable loading."""

import os
from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Binary node store file locations and durability options."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    data_dir: str = "data"
    index_path: str = ""  # empty = <data_dir>/<symbol>.idx
    data_path: str = ""  # empty = <data_dir>/<symbol>.bin
    fsync: bool = False  # fsync both files after every append
    memory_index: bool = True  # False = rescan the index file per enumeration

    def resolve_paths(self, symbol: str) -> tuple[str, str]:
        """Return (index_path, data_path), defaulting to per-symbol files."""
        index_path = self.index_path or os.path.join(self.data_dir, f"{symbol}.idx")
        data_path = self.data_path or os.path.join(self.data_dir, f"{symbol}.bin")
        return index_path, data_path


class MatchSettings(BaseSettings):
    """Similarity scorer weights and thresholds.

    A candidate matches when the psychology score reaches
    ``psychology_override`` or the blended total reaches ``match_threshold``.
    All fields configurable via MATCH_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="MATCH_")

    # Blend of the two composite scores (must sum to 1.0)
    price_weight: Decimal = Decimal("0.6")
    psychology_weight: Decimal = Decimal("0.4")

    # Close counts twice inside the price-shape score
    close_weight: Decimal = Decimal("2")

    match_threshold: Decimal = Decimal("0.89")
    psychology_override: Decimal = Decimal("0.85")

    # delta/percent_change distance used until enough history exists
    forced_distance: Decimal = Decimal("0.3")
    min_history: int = 2


class EngineSettings(BaseSettings):
    """Pattern engine traversal parameters."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    history_size: int = 50
    max_path_length: int = 12  # 0 = never reset to a root search
    mode: Literal["record", "lookup"] = "record"
    percent_change_formula: Literal["legacy", "standard"] = "legacy"


class FeedSettings(BaseSettings):
    """Feed adapter and replay configuration."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    symbol: str = "MSFT"
    replay_path: str = ""
    log_candles: bool = False
    candle_log_path: str = "data/candles.log"


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    store: StoreSettings = StoreSettings()
    match: MatchSettings = MatchSettings()
    engine: EngineSettings = EngineSettings()
    feed: FeedSettings = FeedSettings()
