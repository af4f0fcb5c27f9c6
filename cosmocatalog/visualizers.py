"""
Visual annotations attached to bodies by catalog ``Visualizer`` items.
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Tuple

from .errors import SchemaError, UnresolvedReferenceError
from .geometry import ArrowGeometry
from .schema import optional_field, required_field
from .units import color_value

if TYPE_CHECKING:
    from .catalog import UniverseCatalog
    from .entity import Entity


@dataclass
class AxesVisualizer:
    """Arrows along either the body-fixed axes or the axes of the body frame."""
    kind: str  # 'body' or 'frame'
    size: float = 1.0
    arrows: ArrowGeometry = field(default_factory=ArrowGeometry)


@dataclass
class BodyDirectionVisualizer:
    """An arrow from the body toward another entity."""
    size: float
    target: 'Entity'
    color: Tuple[float, float, float] = (1.0, 1.0, 1.0)


def _size(style: dict, what: str) -> float:
    return float(optional_field(style, 'size', (int, float), what, 1.0))


def load_body_axes(style: dict) -> AxesVisualizer:
    return AxesVisualizer('body', _size(style, 'BodyAxes visualizer'))


def load_frame_axes(style: dict) -> AxesVisualizer:
    axes = AxesVisualizer('frame', _size(style, 'FrameAxes visualizer'))
    axes.arrows.opacity = 0.3
    return axes


def load_body_direction(style: dict, catalog: 'UniverseCatalog') -> BodyDirectionVisualizer:
    what = 'BodyDirection visualizer'
    size = _size(style, what)
    color = color_value(style.get('color'))
    target_name = required_field(style, 'target', str, what)

    target = catalog.find(target_name)
    if target is None:
        raise UnresolvedReferenceError(f"Target body '{target_name}' for {what} not found")
    return BodyDirectionVisualizer(size=size, target=target, color=color)


def load_visualizer(info: dict, catalog: 'UniverseCatalog'):
    """
    Build a visualizer from a ``Visualizer`` item's ``style`` object.

    Raises:
        SchemaError: if the style is missing or of an unknown type
        UnresolvedReferenceError: if a BodyDirection target does not exist
    """
    style = required_field(info, 'style', dict, 'visualizer')
    style_type = required_field(style, 'type', str, 'visualizer style')

    if style_type == 'BodyAxes':
        return load_body_axes(style)
    elif style_type == 'FrameAxes':
        return load_frame_axes(style)
    elif style_type == 'BodyDirection':
        return load_body_direction(style, catalog)

    raise SchemaError(f"Unknown visualizer type '{style_type}'")
