"""Configuration management: load/save TOML config files."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path

from ..ecc.codec import ECCConfig

DEFAULT_CONFIG_PATH = Path("~/.config/galoisfec/config.toml").expanduser()

# TOML section for each AppConfig field
_SECTIONS = {
    "ecc": ("ecc_length", "prime", "generator", "block_size"),
    "logging": ("log_level",),
}


@dataclass
class AppConfig:
    """Top-level application configuration."""

    # Error correction
    ecc_length: int = 20
    prime: int = 0x11D
    generator: int = 2
    block_size: int = 255

    # Logging
    log_level: str = "INFO"

    def to_ecc_config(self) -> ECCConfig:
        return ECCConfig(
            nsym=self.ecc_length,
            prime=self.prime,
            generator=self.generator,
            block_size=self.block_size,
        )

    def as_dict(self) -> dict:
        return asdict(self)


def load_config(path: Path | str | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if the file doesn't exist.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    path = Path(path)

    config = AppConfig()

    if not path.exists():
        return config

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    with open(path, "rb") as f:
        data = tomllib.load(f)

    # Flatten nested sections
    flat = _flatten_toml(data)

    for fld in fields(AppConfig):
        if fld.name in flat:
            # field types are strings under postponed annotations
            kind = type(getattr(config, fld.name))
            try:
                setattr(config, fld.name, kind(flat[fld.name]))
            except (TypeError, ValueError) as e:
                raise ValueError(
                    f"{path}: invalid value for {fld.name}: {flat[fld.name]!r}") from e

    return config


def save_config(config: AppConfig, path: Path | str | None = None) -> None:
    """Save configuration to a TOML file."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# galoisfec configuration",
        "",
        "[ecc]",
        f"ecc_length = {config.ecc_length}",
        f"prime = 0x{config.prime:X}",
        f"generator = {config.generator}",
        f"block_size = {config.block_size}",
        "",
        "[logging]",
        f'log_level = "{config.log_level}"',
        "",
    ]

    with open(path, "w") as f:
        f.write("\n".join(lines))


def _flatten_toml(data: dict) -> dict:
    """Flatten nested TOML dict to a flat dict.

    Keys inside a section may be written with or without the section
    prefix, so ``[ecc] length = 8`` and ``[ecc] ecc_length = 8`` agree.
    """
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for name, item in _flatten_toml(value).items():
                prefixed = f"{key}_{name}"
                if prefixed in _SECTIONS.get(key, ()):
                    result[prefixed] = item
                else:
                    result[name] = item
        else:
            result[key] = value
    return result
