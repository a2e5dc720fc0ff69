"""
Field renderer registry for the rendering collaborator.

Renderers are kept apart from validators: this registry maps a FieldKind to
whatever callable the UI layer uses to draw that kind of input. The core never
renders anything itself.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from formstate.fields import FieldKind
from formstate.overlay import field_type, form_ident

logger = logging.getLogger(__name__)

Renderer = Callable[..., Any]


class FieldRendererRegistry:
    """Registry of renderers keyed by field kind. Not thread-safe."""
    _renderers: Dict[FieldKind, Renderer] = {}

    @classmethod
    def register(cls, kind: FieldKind, fn: Optional[Renderer] = None):
        """Register fn for kind. Usable as a decorator."""
        if fn is None:
            def decorator(func: Renderer) -> Renderer:
                cls.register(kind, func)
                return func
            return decorator
        if kind in cls._renderers:
            logger.warning(f"Overwriting existing renderer for {kind.value} fields")
        cls._renderers[kind] = fn
        return fn

    @classmethod
    def unregister(cls, kind: FieldKind) -> None:
        cls._renderers.pop(kind, None)

    @classmethod
    def get(cls, kind: FieldKind) -> Optional[Renderer]:
        return cls._renderers.get(kind)

    @classmethod
    def snapshot(cls) -> Dict[FieldKind, Renderer]:
        return dict(cls._renderers)

    @classmethod
    def restore(cls, renderers: Dict[FieldKind, Renderer]) -> None:
        cls._renderers.clear()
        cls._renderers.update(renderers)


def render_field(component: Any, entity: Mapping[str, Any], name: str, *params) -> Any:
    """Render field `name` with the renderer registered for its kind.

    Returns whatever the renderer returns, or None (with a warning) when the
    field is undeclared or its kind has no renderer.
    """
    kind = field_type(entity, name)
    renderer = FieldRendererRegistry.get(kind) if kind is not None else None
    if renderer is None:
        logger.warning(f"Cannot dispatch to a field renderer on form {form_ident(entity)!r} for field '{name}'")
        return None
    return renderer(component, entity, name, *params)
