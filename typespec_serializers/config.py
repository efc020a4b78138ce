# File: typespec_serializers/config.py
"""
TypeSpec Serializers - Generator Configuration
================================================
A single ``GeneratorConfig`` instance drives every component.  It is created
once per process (``get_config()``) and only changes through
``GeneratorConfig.reconfigure()`` / ``configure()``, which bump a private
revision counter.  Components keep a reference to the same object and compare
revisions to notice that their memoized results are stale.

Configuration can also be read from a YAML file (``load_config_file``), where
callables are spelled as import strings (``"package.module:function"``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from typespec_serializers.utils import (
    import_string,
    lower_camel_key,
    resolve_path,
    strip_serializer_suffix,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.config")

#: Environment toggle that forces regeneration of every file.
FORCE_ENV_VAR: str = "TYPESPEC_SERIALIZERS_FORCE"

#: Config file looked up in the working directory by the CLI.
DEFAULT_CONFIG_FILENAME: str = "typespec_serializers.yaml"


class ConfigurationError(ValueError):
    """Raised when the generator cannot run with the current configuration."""


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_SQL_TO_TYPESPEC_TYPE_MAPPING: Dict[str, str] = {
    "boolean": "boolean",
    "date": "plainDate",
    "datetime": "utcDateTime",
    "timestamp": "utcDateTime",
    "timestamptz": "offsetDateTime",
    "time": "plainTime",
    "decimal": "decimal128",
    "numeric": "decimal128",
    "integer": "int32",
    "bigint": "int64",
    "smallint": "int16",
    "tinyint": "int8",
    "float": "float32",
    "double": "float64",
    "real": "float32",
    "string": "string",
    "text": "string",
    "citext": "string",
    "binary": "bytes",
    "blob": "bytes",
    "json": "Record<string, unknown>",
    "jsonb": "Record<string, unknown>",
    "uuid": "string",
}

DEFAULT_GLOBAL_TYPES: Set[str] = {"Array", "Record", "Date"}


def default_name_from_serializer(name: str) -> str:
    """``ComposerWithSongsSerializer.SongSerializer`` → ``ComposerWithSongs.Song``."""
    return strip_serializer_suffix(name)


def never_skip(definition: Any) -> bool:
    return False


# ---------------------------------------------------------------------------
# GeneratorConfig
# ---------------------------------------------------------------------------


class GeneratorConfig(BaseModel):
    """
    Every option that affects discovery, inference and output.

    Relative paths are anchored at ``root``.
    """

    model_config = ConfigDict(
        strict=False,
        validate_assignment=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )

    # -- Locations ------------------------------------------------------------
    root: Path = Field(
        default_factory=Path.cwd, description="Project root, anchors relative paths."
    )
    output_dir: Path = Field(
        default=Path("app/frontend/typespec/serializers"),
        description="Root directory for generated files.",
    )
    custom_typespec_dir: Optional[Path] = Field(
        default=None,
        description="Root of hand-written TypeSpec types (defaults to output_dir's parent).",
    )
    serializers_dirs: List[Path] = Field(
        default_factory=lambda: [Path("app/serializers")],
        description="Directories scanned for serializer source files.",
    )

    # -- Discovery --------------------------------------------------------------
    base_serializers: List[str] = Field(
        default_factory=lambda: ["BaseSerializer"],
        description="Roots of the discovery traversal; never generated themselves.",
    )
    skip_serializer_if: Callable[..., bool] = Field(default=never_skip)

    # -- Naming & rendering ---------------------------------------------------
    name_from_serializer: Callable[[str], str] = Field(default=default_name_from_serializer)
    namespace: Optional[str] = Field(
        default=None, description="Wrap models in a namespace and skip the index file."
    )
    global_types: Set[str] = Field(default_factory=lambda: set(DEFAULT_GLOBAL_TYPES))
    sort_properties_by: Optional[Union[str, Callable[..., Any]]] = Field(default="name")
    transform_keys: Optional[Callable[[str], str]] = Field(default=None)

    # -- Type mapping -----------------------------------------------------------
    sql_to_typespec_type_mapping: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_SQL_TO_TYPESPEC_TYPE_MAPPING)
    )
    sql_type_default: Optional[str] = Field(
        default=None, description="Type for storage types missing from the mapping."
    )

    # -- Record metadata --------------------------------------------------------
    record_provider: Any = Field(
        default=None,
        description=(
            "Provider object, SQLAlchemy declarative base, import string "
            "or path to a YAML/JSON record file."
        ),
    )

    _revision: int = PrivateAttr(default=0)

    # -- Lifecycle --------------------------------------------------------------

    @property
    def revision(self) -> int:
        """Incremented by every ``reconfigure`` call."""
        return self._revision

    def reconfigure(self, **changes: Any) -> "GeneratorConfig":
        """
        Apply *changes* in place and bump the revision.

        Raises ``ConfigurationError`` for unknown options or invalid values;
        in that case nothing is changed.
        """
        unknown: List[str] = sorted(set(changes) - set(type(self).model_fields))
        if unknown:
            raise ConfigurationError(f"Unknown configuration option(s): {unknown}")

        try:
            candidate: GeneratorConfig = self.model_validate(
                {**self._field_values(), **changes}
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

        for key in changes:
            object.__setattr__(self, key, getattr(candidate, key))
        self._revision += 1
        logger.debug("Configuration updated (revision %d): %s", self._revision, sorted(changes))
        return self

    def _field_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in type(self).model_fields}

    # -- Derived paths ----------------------------------------------------------

    @property
    def output_path(self) -> Path:
        return resolve_path(self.output_dir, self.root)

    @property
    def serializers_paths(self) -> List[Path]:
        return [resolve_path(d, self.root) for d in self.serializers_dirs]

    @property
    def relative_custom_typespec_dir(self) -> str:
        """Custom types root, relative to the output directory (posix form)."""
        custom: Path = (
            resolve_path(self.custom_typespec_dir, self.root)
            if self.custom_typespec_dir is not None
            else self.output_path.parent
        )
        return Path(os.path.relpath(custom, self.output_path)).as_posix()

    # -- Naming -----------------------------------------------------------------

    def tsp_name(self, serializer_name: str) -> str:
        """TypeSpec model name for a serializer's qualified name."""
        return self.name_from_serializer(serializer_name).replace(".", "")

    def tsp_filename(self, serializer_name: str) -> str:
        """Output file (relative, no extension) for a serializer's qualified name."""
        return self.name_from_serializer(serializer_name).replace(".", "/")

    def key_transform(self, serializer_transform: Optional[Callable[[str], str]]) -> Callable[[str], str]:
        return self.transform_keys or serializer_transform or lower_camel_key

    def __repr__(self) -> str:
        return (
            f"<GeneratorConfig output_dir={self.output_dir} "
            f"namespace={self.namespace!r} revision={self._revision}>"
        )


# ---------------------------------------------------------------------------
# Process-wide configuration
# ---------------------------------------------------------------------------

_CONFIG: Optional[GeneratorConfig] = None


def get_config() -> GeneratorConfig:
    """Return the process-wide configuration, creating it on first use."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = GeneratorConfig()
    return _CONFIG


def configure(**changes: Any) -> GeneratorConfig:
    """Reconfigure the process-wide configuration in place."""
    return get_config().reconfigure(**changes)


def reset_config(**overrides: Any) -> GeneratorConfig:
    """Restore every option to its default (plus *overrides*), in place."""
    defaults: GeneratorConfig = GeneratorConfig(**overrides)
    return get_config().reconfigure(**defaults._field_values())


# ---------------------------------------------------------------------------
# YAML config file
# ---------------------------------------------------------------------------

_PATH_OPTIONS = ("output_dir", "custom_typespec_dir")
_CALLABLE_OPTIONS = ("name_from_serializer", "skip_serializer_if")
_KEY_TRANSFORMS: Dict[str, Optional[Callable[[str], str]]] = {
    "camel": lower_camel_key,
    "none": str,
}


def _load_callable(option: str, value: Any) -> Callable[..., Any]:
    if callable(value):
        return value
    if not isinstance(value, str):
        raise ConfigurationError(f"'{option}' must be an import string, got {type(value).__name__}.")
    try:
        obj: Any = import_string(value)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import '{option}' from '{value}': {exc}") from exc
    if not callable(obj):
        raise ConfigurationError(f"'{option}' ({value}) is not callable.")
    return obj


def config_from_mapping(data: Dict[str, Any], *, root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Turn raw YAML data into keyword arguments for ``GeneratorConfig``.

    Import strings become callables; ``root`` defaults to the file's directory.
    """
    options: Dict[str, Any] = dict(data)

    if root is not None and "root" not in options:
        options["root"] = root
    elif "root" in options and root is not None:
        options["root"] = resolve_path(options["root"], root)

    for option in _CALLABLE_OPTIONS:
        if option in options:
            options[option] = _load_callable(option, options[option])

    if "transform_keys" in options and options["transform_keys"] is not None:
        value: Any = options["transform_keys"]
        if isinstance(value, str) and value in _KEY_TRANSFORMS:
            options["transform_keys"] = _KEY_TRANSFORMS[value]
        else:
            options["transform_keys"] = _load_callable("transform_keys", value)

    if isinstance(options.get("sort_properties_by"), str) and ":" in options["sort_properties_by"]:
        options["sort_properties_by"] = _load_callable("sort_properties_by", options["sort_properties_by"])

    for option in _PATH_OPTIONS:
        if options.get(option) is not None:
            options[option] = Path(options[option])

    if "global_types" in options and options["global_types"] is not None:
        options["global_types"] = set(options["global_types"])

    if "sql_to_typespec_type_mapping" in options:
        mapping: Dict[str, str] = dict(DEFAULT_SQL_TO_TYPESPEC_TYPE_MAPPING)
        mapping.update(options["sql_to_typespec_type_mapping"] or {})
        options["sql_to_typespec_type_mapping"] = mapping

    return options


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read generator options from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigurationError: If the file can't be parsed or has invalid options.
    """
    import yaml

    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping at top level of {path}, got {type(data).__name__}."
        )

    logger.info("Loaded configuration file: %s (%d options).", path, len(data))
    return config_from_mapping(data, root=path.parent.resolve())


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FORCE_ENV_VAR",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_SQL_TO_TYPESPEC_TYPE_MAPPING",
    "DEFAULT_GLOBAL_TYPES",
    "ConfigurationError",
    "GeneratorConfig",
    "default_name_from_serializer",
    "get_config",
    "configure",
    "reset_config",
    "config_from_mapping",
    "load_config_file",
]

logger.debug("typespec_serializers.config loaded.")
