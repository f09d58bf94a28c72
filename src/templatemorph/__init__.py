from .morpher import Morpher, configure, default_morpher, iter_elements, transform
from .parser import Availability, HTMLCapability
from .pipeline import Stage, TransformPipeline
from .rules import DEFAULT_MORPHS, MorphRegistry, MorphRule

__all__ = [
    "DEFAULT_MORPHS",
    "Availability",
    "HTMLCapability",
    "MorphRegistry",
    "MorphRule",
    "Morpher",
    "Stage",
    "TransformPipeline",
    "configure",
    "default_morpher",
    "iter_elements",
    "transform",
]
