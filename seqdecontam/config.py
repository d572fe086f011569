"""Configuration file loader.

Provides YAML-based configuration of a classification run with default
value support. Parameter values are validated by the classifier itself;
this module only checks structure.

Example ``decontam.yaml``::

    method: combined
    batch_combine: fisher
    threshold: 0.1
    conc: dna_conc
    neg: is_control
    batch: run
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from seqdecontam.core.exceptions import ConfigurationError


@dataclass(slots=True)
class DecontamConfig:
    """Configuration for a contaminant-identification run.

    Attributes
    ----------
    method : str | None
        Classification method; None selects it from ``conc``/``neg``.
    batch_combine : str
        Rule used to merge per-batch p-values.
    threshold : float | list[float]
        p-value threshold, or a (frequency, prevalence) pair.
    normalize : bool
        Whether to convert samples to relative frequencies.
    detailed : bool
        Whether to produce the detailed table.
    prevalence_test : str
        Contingency test used by the prevalence tester.
    conc : str | None
        Metadata column holding DNA concentrations.
    neg : str | None
        Metadata column holding negative-control flags.
    batch : str | None
        Metadata column holding batch labels.
    assay_name : str
        Assay to classify.
    layer_name : str | None
        Layer to classify; None picks "raw" or the first layer.
    not_contaminant : bool
        Run the non-contaminant classifier instead.
    """

    method: str | None = None
    batch_combine: str = "minimum"
    threshold: float | list[float] | None = None
    normalize: bool = True
    detailed: bool = False
    prevalence_test: str = "auto"
    conc: str | None = None
    neg: str | None = None
    batch: str | None = None
    assay_name: str = "counts"
    layer_name: str | None = None
    not_contaminant: bool = False

    @property
    def effective_threshold(self) -> float | list[float]:
        """Configured threshold, or the classifier default."""
        if self.threshold is not None:
            return self.threshold
        return 0.5 if self.not_contaminant else 0.1

    def to_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for the classifier functions."""
        kwargs: dict[str, Any] = {
            "conc": self.conc,
            "neg": self.neg,
            "batch": self.batch,
            "threshold": self.effective_threshold,
            "normalize": self.normalize,
            "prevalence_test": self.prevalence_test,
            "assay_name": self.assay_name,
            "layer_name": self.layer_name,
            "batch_combine": self.batch_combine,
        }
        if self.not_contaminant:
            kwargs["method"] = self.method or "prevalence"
        else:
            kwargs["method"] = self.method
        return kwargs

    def updated(self, **overrides: Any) -> DecontamConfig:
        """Return a copy with the non-None ``overrides`` applied."""
        data = asdict(self)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return DecontamConfig(**data)


_FIELD_NAMES = frozenset(f.name for f in fields(DecontamConfig))


def config_from_dict(data: dict[str, Any] | None, config_path: Path | None = None) -> DecontamConfig:
    """Build a :class:`DecontamConfig` from parsed YAML data.

    Raises
    ------
    ConfigurationError
        If the data is not a mapping or contains unknown keys.
    """
    if data is None:
        return DecontamConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}.",
            config_path=config_path,
        )
    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {unknown}. Valid keys: {sorted(_FIELD_NAMES)}.",
            config_path=config_path,
        )
    return DecontamConfig(**data)


def load_config(config_path: str | Path) -> DecontamConfig:
    """Load a run configuration from a YAML file.

    If the file does not exist, the default configuration is returned.

    Parameters
    ----------
    config_path : str | Path
        Path to the configuration YAML file.

    Returns
    -------
    DecontamConfig
        Loaded configuration.

    Raises
    ------
    ConfigurationError
        If YAML parsing fails, the file is unreadable, or the content is
        not a valid configuration mapping.
    """
    path = Path(config_path)

    if not path.exists():
        return DecontamConfig()

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML config: {e}",
            config_path=path,
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file: {e}",
            config_path=path,
        ) from e

    return config_from_dict(data, config_path=path)


def save_config(config: DecontamConfig, config_path: str | Path) -> None:
    """Write a configuration to a YAML file."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(asdict(config), f, sort_keys=False)
