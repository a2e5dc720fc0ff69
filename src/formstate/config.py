"""
Framework configuration for form overlays.

A single frozen FormConfig holds the knobs shared by every operation: the
reserved entity property that carries the overlay, the pattern used to coerce
integer input, and whether unregistered validators are reported.

DUAL LAYER PATTERN:
- _default_config: process-wide default (set_form_config)
- _scoped_config: contextvar override (form_config_context)

Operations read the config at call time through get_form_config(); nothing
caches it.
"""

import contextvars
import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormConfig:
    """Configuration shared by all form operations."""
    form_key: str = "ui/form"  # Reserved entity property holding the overlay
    integer_pattern: str = r"^-?[0-9]+$"
    warn_unregistered_validators: bool = True


_default_config: FormConfig = FormConfig()

_scoped_config: contextvars.ContextVar[Optional[FormConfig]] = contextvars.ContextVar(
    'scoped_form_config', default=None
)


def get_form_config() -> FormConfig:
    """Return the active config: the innermost scoped override, else the default."""
    scoped = _scoped_config.get()
    return scoped if scoped is not None else _default_config


def set_form_config(config: FormConfig) -> None:
    """Replace the process-wide default config.

    Args:
        config: The new default. Scoped overrides still take precedence.
    """
    global _default_config
    if not isinstance(config, FormConfig):
        raise TypeError(f"set_form_config() expects a FormConfig, got {type(config).__name__}")
    _default_config = config
    logger.debug(f"Default form config set: {config}")


def get_default_form_config() -> FormConfig:
    """Return the process-wide default, ignoring scoped overrides."""
    return _default_config


@contextmanager
def form_config_context(**overrides) -> Iterator[FormConfig]:
    """Scope config overrides to a block.

    Usage:
        with form_config_context(form_key="form"):
            entity = build_form(PersonForm, person)
            # overlay stored under entity["form"]

    Overrides are applied on top of whatever config is active when the block
    is entered, so contexts nest.
    """
    config = dataclasses.replace(get_form_config(), **overrides)
    token = _scoped_config.set(config)
    try:
        yield config
    finally:
        _scoped_config.reset(token)


def form_key() -> str:
    """Shortcut for the reserved overlay property of the active config."""
    return get_form_config().form_key
