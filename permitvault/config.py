"""
permitvault configuration loader.

Goals
-----
- Layered config with clear precedence:
    1) Explicit overrides passed to `load()` (highest)
    2) Environment variables (PERMITVAULT_*)
    3) Config file (TOML or JSON)
    4) Built-in defaults (lowest)
- Typed dataclasses with validation; failures raise `ConfigError`.

Covered settings:
  - chain identity (chain id; part of every permit domain)
  - token metadata (EIP-712 domain name/version, symbol, decimals, supply)
  - permit defaults (deadline TTL for tooling)
  - logging (level, format, optional file)

Environment variables:
  PERMITVAULT_CHAIN_ID, PERMITVAULT_TOKEN_NAME, PERMITVAULT_TOKEN_SYMBOL,
  PERMITVAULT_TOKEN_VERSION, PERMITVAULT_TOKEN_DECIMALS,
  PERMITVAULT_TOKEN_SUPPLY, PERMITVAULT_PERMIT_TTL ("3600", "20s", "1h"),
  PERMITVAULT_LOG_LEVEL, PERMITVAULT_LOG_FORMAT, PERMITVAULT_LOG_FILE
"""

from __future__ import annotations

import json
import os
import re
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

# ------------------------------
# Defaults & helpers
# ------------------------------

DEVNET_CHAIN_ID = 31337
DEFAULT_TOKEN_NAME = "MyToken"
DEFAULT_TOKEN_SYMBOL = "MTK"
DEFAULT_TOKEN_VERSION = "1"
DEFAULT_DECIMALS = 18
DEFAULT_INITIAL_SUPPLY = 10_000 * 10**DEFAULT_DECIMALS
DEFAULT_PERMIT_TTL = 3600

U256_MAX = 2**256 - 1

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)


def parse_duration(value: str | int) -> int:
    """
    Parse a tiny duration language into whole seconds.
      "30" -> 30, "20s" -> 20, "5m" -> 300, "1h" -> 3600, "2d" -> 172800
    """
    if isinstance(value, int):
        if value < 0:
            raise ConfigError("duration must be non-negative", value=value)
        return value
    m = _DURATION_RE.match(str(value))
    if not m:
        raise ConfigError("invalid duration", value=value)
    mult = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}[m.group(2).lower()]
    return int(m.group(1)) * mult


def _env_int(name: str) -> int:
    v = os.environ[name]
    try:
        return int(v, 0)
    except ValueError as e:
        raise ConfigError(f"{name} must be int", value=v) from e


def _expand(p: str | Path) -> Path:
    return Path(p).expanduser().resolve()


# ------------------------------
# Typed configuration model
# ------------------------------


@dataclass
class ChainConfig:
    chain_id: int = DEVNET_CHAIN_ID


@dataclass
class TokenConfig:
    name: str = DEFAULT_TOKEN_NAME
    symbol: str = DEFAULT_TOKEN_SYMBOL
    version: str = DEFAULT_TOKEN_VERSION
    decimals: int = DEFAULT_DECIMALS
    initial_supply: int = DEFAULT_INITIAL_SUPPLY


@dataclass
class PermitConfig:
    default_ttl: int = DEFAULT_PERMIT_TTL  # seconds


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: Optional[str] = None  # "json" | "text" | None (auto)
    file: Optional[Path] = None


@dataclass
class Config:
    chain: ChainConfig = field(default_factory=ChainConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    permit: PermitConfig = field(default_factory=PermitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if d["logging"]["file"] is not None:
            d["logging"]["file"] = str(d["logging"]["file"])
        return d


# ------------------------------
# File loader (TOML / JSON)
# ------------------------------


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError("config file not found", path=str(path))
    suffix = path.suffix.lower()
    with path.open("rb") as f:
        if suffix in {".toml", ".tml"}:
            return tomllib.load(f)
        if suffix == ".json":
            return json.load(f)
    raise ConfigError("unsupported config format; use .toml or .json", path=str(path))


def _merge_dict(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """Nested dict merge: values in b override a."""
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dict(out[k], v)
        else:
            out[k] = v
    return out


def _env_layer() -> Dict[str, Any]:
    env: Dict[str, Dict[str, Any]] = {"chain": {}, "token": {}, "permit": {}, "logging": {}}
    if "PERMITVAULT_CHAIN_ID" in os.environ:
        env["chain"]["chain_id"] = _env_int("PERMITVAULT_CHAIN_ID")
    if "PERMITVAULT_TOKEN_NAME" in os.environ:
        env["token"]["name"] = os.environ["PERMITVAULT_TOKEN_NAME"]
    if "PERMITVAULT_TOKEN_SYMBOL" in os.environ:
        env["token"]["symbol"] = os.environ["PERMITVAULT_TOKEN_SYMBOL"].strip()
    if "PERMITVAULT_TOKEN_VERSION" in os.environ:
        env["token"]["version"] = os.environ["PERMITVAULT_TOKEN_VERSION"].strip()
    if "PERMITVAULT_TOKEN_DECIMALS" in os.environ:
        env["token"]["decimals"] = _env_int("PERMITVAULT_TOKEN_DECIMALS")
    if "PERMITVAULT_TOKEN_SUPPLY" in os.environ:
        env["token"]["initial_supply"] = _env_int("PERMITVAULT_TOKEN_SUPPLY")
    if "PERMITVAULT_PERMIT_TTL" in os.environ:
        env["permit"]["default_ttl"] = os.environ["PERMITVAULT_PERMIT_TTL"]
    if "PERMITVAULT_LOG_LEVEL" in os.environ:
        env["logging"]["level"] = os.environ["PERMITVAULT_LOG_LEVEL"].strip()
    if "PERMITVAULT_LOG_FORMAT" in os.environ:
        env["logging"]["format"] = os.environ["PERMITVAULT_LOG_FORMAT"].strip().lower()
    if "PERMITVAULT_LOG_FILE" in os.environ:
        env["logging"]["file"] = os.environ["PERMITVAULT_LOG_FILE"]
    return {k: v for k, v in env.items() if v}


# ------------------------------
# Main loader
# ------------------------------


def load(config_file: Optional[str | Path] = None, **overrides: Any) -> Config:
    """
    Load configuration. Precedence: overrides > env > file > defaults.

    Parameters
    ----------
    config_file : str | Path | None
        Optional TOML or JSON file with sections
          chain:   { chain_id }
          token:   { name, symbol, version, decimals, initial_supply }
          permit:  { default_ttl }
          logging: { level, format, file }
    overrides : Any
        Section dicts, e.g. load(chain={"chain_id": 1}, token={"name": "X"})
    """
    base: Dict[str, Any] = Config().to_dict()

    if config_file:
        base = _merge_dict(base, _load_file(_expand(config_file)))
    base = _merge_dict(base, _env_layer())
    if overrides:
        base = _merge_dict(base, overrides)

    try:
        log_file = base["logging"].get("file")
        cfg = Config(
            chain=ChainConfig(chain_id=int(base["chain"]["chain_id"])),
            token=TokenConfig(
                name=str(base["token"]["name"]),
                symbol=str(base["token"]["symbol"]),
                version=str(base["token"]["version"]),
                decimals=int(base["token"]["decimals"]),
                initial_supply=int(base["token"]["initial_supply"]),
            ),
            permit=PermitConfig(default_ttl=parse_duration(base["permit"]["default_ttl"])),
            logging=LoggingConfig(
                level=str(base["logging"]["level"]).upper(),
                format=base["logging"].get("format"),
                file=_expand(log_file) if log_file else None,
            ),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError("malformed configuration", error=str(e)) from e

    validate(cfg)
    return cfg


def validate(cfg: Config) -> None:
    if cfg.chain.chain_id <= 0 or cfg.chain.chain_id > U256_MAX:
        raise ConfigError("chain_id must be a positive u256", chain_id=cfg.chain.chain_id)
    if not cfg.token.name:
        raise ConfigError("token name must be non-empty")
    if not (1 <= len(cfg.token.symbol) <= 11):
        raise ConfigError("token symbol must be 1..11 chars", symbol=cfg.token.symbol)
    if not cfg.token.version:
        raise ConfigError("token version must be non-empty")
    if not (0 <= cfg.token.decimals <= 36):
        raise ConfigError("decimals must be in [0, 36]", decimals=cfg.token.decimals)
    if not (0 <= cfg.token.initial_supply <= U256_MAX):
        raise ConfigError("initial_supply must be a u256", initial_supply=cfg.token.initial_supply)
    if cfg.logging.format not in (None, "json", "text"):
        raise ConfigError("logging.format must be json or text", format=cfg.logging.format)


__all__ = [
    "Config",
    "ChainConfig",
    "TokenConfig",
    "PermitConfig",
    "LoggingConfig",
    "load",
    "validate",
    "parse_duration",
    "DEVNET_CHAIN_ID",
]
