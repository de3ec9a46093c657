import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import toml
from dotenv import load_dotenv


logger = logging.getLogger(__name__)

NETWORK_RPC_URLS = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "devnet": "https://api.devnet.solana.com",
}

# legacy variable -> dotted settings key
LEGACY_ENV_KEYS = {
    "SOLANA_NETWORK": "solana.network",
    "SOLANA_RPC_URL_OVERRIDE": "solana.rpc_url",
    "SOLANA_WALLET_JSON": "solana.wallet_path",
    "SOLANA_TOKEN_LIST": "solana.token_list_path",
}

FEE_TIERS = ("low", "medium", "high", "extreme")


@dataclass
class SolanaSettings:
    network: str = "mainnet-beta"
    rpc_url: Optional[str] = None
    wallet_path: Optional[str] = None
    token_list_path: Optional[str] = None
    http_timeout: float = 30.0

    @property
    def resolved_rpc_url(self) -> str:
        return self.rpc_url or NETWORK_RPC_URLS[self.network]


@dataclass
class FeeSettings:
    tier: str = "high"
    fallback_low: int = 10_000
    fallback_medium: int = 20_000
    fallback_high: int = 30_000
    fallback_extreme: int = 40_000
    min_fee_floor: int = 1_000
    http_timeout: float = 5.0


@dataclass
class SubmissionSettings:
    confirm_interval: float = 0.5
    validity_window_blocks: int = 100
    max_attempts: int = 150
    history_limit: int = 100
    memo_size: int = 1024


@dataclass
class BalanceSettings:
    max_attempts: int = 10
    interval: float = 0.5


@dataclass
class OverrideRecord:
    key: str
    source: str
    old: Any
    new: Any


@dataclass
class Settings:
    solana: SolanaSettings = field(default_factory=SolanaSettings)
    fees: FeeSettings = field(default_factory=FeeSettings)
    submission: SubmissionSettings = field(default_factory=SubmissionSettings)
    balances: BalanceSettings = field(default_factory=BalanceSettings)
    overrides: List[OverrideRecord] = field(default_factory=list)
    loaded_files: List[str] = field(default_factory=list)

    @classmethod
    def load(
        cls,
        settings_path: Optional[str] = None,
        env_prefix: str = "LIQGATE__",
        dotenv_path: Optional[str] = None,
    ) -> "Settings":
        """
        Layers, lowest precedence first:
        settings TOML, legacy SOLANA_* variables, prefixed env overrides.
        A .env file only fills variables not already set in the environment.
        """
        layers: List[Tuple[Dict[str, Any], str]] = []
        loaded_files: List[str] = []

        if dotenv_path is None or os.path.exists(dotenv_path):
            load_dotenv(dotenv_path, override=False)

        if settings_path:
            if not os.path.exists(settings_path):
                raise ValueError(f"Settings file not found: {settings_path}")
            with open(settings_path, "r", encoding="utf-8") as f:
                layers.append((toml.load(f), os.path.basename(settings_path)))
            loaded_files.append(os.path.basename(settings_path))

        legacy = _load_legacy_env()
        if legacy:
            layers.append((legacy, "env/legacy"))

        env_overrides = _load_env_overrides(env_prefix)
        if env_overrides:
            layers.append((env_overrides, "env"))

        merged: Dict[str, Any] = {}
        overrides: List[OverrideRecord] = []
        for payload, source in layers:
            _merge_dicts(merged, payload, source, overrides)

        cfg = cls(
            solana=_build_solana(merged),
            fees=_build_fees(merged),
            submission=_build_submission(merged),
            balances=_build_balances(merged),
            overrides=overrides,
            loaded_files=loaded_files,
        )
        cfg.log_summary()
        return cfg

    def log_summary(self) -> None:
        logger.info("Loaded config files: %s", ", ".join(self.loaded_files) or "<none>")
        for o in self.overrides:
            logger.info("Override: %s from %s (old=%s -> new=%s)", o.key, o.source, o.old, o.new)
        logger.info("Solana: network=%s rpc_url=%s", self.solana.network, self.solana.resolved_rpc_url)
        logger.info(
            "Fees: tier=%s fallback=%s/%s/%s/%s min_fee_floor=%s",
            self.fees.tier,
            self.fees.fallback_low,
            self.fees.fallback_medium,
            self.fees.fallback_high,
            self.fees.fallback_extreme,
            self.fees.min_fee_floor,
        )
        logger.info(
            "Submission: confirm_interval=%ss validity_window_blocks=%s max_attempts=%s memo_size=%s",
            self.submission.confirm_interval,
            self.submission.validity_window_blocks,
            self.submission.max_attempts,
            self.submission.memo_size,
        )
        logger.info(
            "Balances: max_attempts=%s interval=%ss",
            self.balances.max_attempts,
            self.balances.interval,
        )


def _merge_dicts(dst: Dict[str, Any], src: Dict[str, Any], source: str, overrides: List[OverrideRecord], prefix: str = "") -> None:
    for key, value in src.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and isinstance(dst.get(key), dict):
            _merge_dicts(dst[key], value, source, overrides, full_key)
        elif isinstance(value, dict):
            dst[key] = value.copy()
        else:
            if key in dst and dst[key] != value:
                overrides.append(OverrideRecord(full_key, source, dst[key], value))
            dst[key] = value


def _load_legacy_env() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for env_key, dotted in LEGACY_ENV_KEYS.items():
        raw = os.environ.get(env_key)
        if raw:
            _assign_env_override(out, dotted.split("."), raw, coerce=False)
    return out


def _load_env_overrides(prefix: str) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_key, env_val in os.environ.items():
        if not env_key.startswith(prefix):
            continue
        path_parts = env_key[len(prefix):].lower().split("__")
        _assign_env_override(overrides, path_parts, env_val)
    return overrides


def _assign_env_override(dst: Dict[str, Any], path_parts: List[str], raw_val: str, coerce: bool = True) -> None:
    cur = dst
    for part in path_parts[:-1]:
        if part not in cur or not isinstance(cur[part], dict):
            cur[part] = {}
        cur = cur[part]
    cur[path_parts[-1]] = _coerce_env_value(raw_val) if coerce else raw_val


def _coerce_env_value(val: str) -> Any:
    lowered = val.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    try:
        return int(val)
    except ValueError:
        pass
    try:
        return float(val)
    except ValueError:
        pass
    return val


def _build_solana(cfg: Dict[str, Any]) -> SolanaSettings:
    section = cfg.get("solana", {}) or {}
    network = str(section.get("network", "mainnet-beta"))
    if network not in NETWORK_RPC_URLS:
        raise ValueError(f"solana.network must be one of {sorted(NETWORK_RPC_URLS)}, got {network!r}")
    return SolanaSettings(
        network=network,
        rpc_url=section.get("rpc_url") or None,
        wallet_path=section.get("wallet_path") or None,
        token_list_path=section.get("token_list_path") or None,
        http_timeout=_positive(section.get("http_timeout", 30.0), "solana.http_timeout"),
    )


def _build_fees(cfg: Dict[str, Any]) -> FeeSettings:
    section = cfg.get("fees", {}) or {}
    tier = str(section.get("tier", "high")).lower()
    if tier not in FEE_TIERS:
        raise ValueError(f"fees.tier must be one of {FEE_TIERS}, got {tier!r}")

    fees = FeeSettings(
        tier=tier,
        fallback_low=_to_int(section.get("fallback_low", 10_000), "fees.fallback_low"),
        fallback_medium=_to_int(section.get("fallback_medium", 20_000), "fees.fallback_medium"),
        fallback_high=_to_int(section.get("fallback_high", 30_000), "fees.fallback_high"),
        fallback_extreme=_to_int(section.get("fallback_extreme", 40_000), "fees.fallback_extreme"),
        min_fee_floor=_to_int(section.get("min_fee_floor", 1_000), "fees.min_fee_floor"),
        http_timeout=_positive(section.get("http_timeout", 5.0), "fees.http_timeout"),
    )
    table = [fees.fallback_low, fees.fallback_medium, fees.fallback_high, fees.fallback_extreme]
    if any(v < 0 for v in table) or table != sorted(table):
        raise ValueError(f"fees fallback tiers must be non-negative and non-decreasing: {table}")
    if fees.min_fee_floor < 0:
        raise ValueError("fees.min_fee_floor must be >= 0")
    return fees


def _build_submission(cfg: Dict[str, Any]) -> SubmissionSettings:
    section = cfg.get("submission", {}) or {}
    submission = SubmissionSettings(
        confirm_interval=float(section.get("confirm_interval", 0.5)),
        validity_window_blocks=_to_int(section.get("validity_window_blocks", 100), "submission.validity_window_blocks"),
        max_attempts=_to_int(section.get("max_attempts", 150), "submission.max_attempts"),
        history_limit=_to_int(section.get("history_limit", 100), "submission.history_limit"),
        memo_size=_to_int(section.get("memo_size", 1024), "submission.memo_size"),
    )
    if submission.confirm_interval < 0:
        raise ValueError("submission.confirm_interval must be >= 0")
    if submission.validity_window_blocks < 1 or submission.max_attempts < 1:
        raise ValueError("submission.validity_window_blocks and submission.max_attempts must be >= 1")
    if not 1 <= submission.history_limit <= 1000:
        raise ValueError("submission.history_limit must be between 1 and 1000")
    if submission.memo_size < 1:
        raise ValueError("submission.memo_size must be >= 1")
    return submission


def _build_balances(cfg: Dict[str, Any]) -> BalanceSettings:
    section = cfg.get("balances", {}) or {}
    balances = BalanceSettings(
        max_attempts=_to_int(section.get("max_attempts", 10), "balances.max_attempts"),
        interval=float(section.get("interval", 0.5)),
    )
    if balances.max_attempts < 1:
        raise ValueError("balances.max_attempts must be >= 1")
    if balances.interval < 0:
        raise ValueError("balances.interval must be >= 0")
    return balances


def _to_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer value for {label}: {value}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer value for {label}: {value}") from exc


def _positive(value: Any, label: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid number for {label}: {value}") from exc
    if result <= 0:
        raise ValueError(f"{label} must be > 0")
    return result
