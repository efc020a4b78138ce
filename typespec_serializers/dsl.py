# File: typespec_serializers/dsl.py
"""
TypeSpec Serializers - Serializer Declarations
================================================
The declarative surface used by application code::

    from typespec_serializers import BaseSerializer, attribute, has_many

    class ComposerSerializer(BaseSerializer, model="Composer"):
        id = attribute()
        name = attribute()
        songs = has_many("SongSerializer")

        @attribute("string", optional=True)
        def display_name(self, composer):
            ...

Class keywords:
    model           Backing record type whose columns type the attributes.
    object_as       Alias of the serialized object; also names the record
                    (``object_as="song"`` binds to ``Song``) unless ``model``
                    is given.
    typespec_from   Interface whose field types are mirrored when nothing
                    else is known about an attribute.
    transform_keys  Callable applied to every output key.

Every subclass registers itself in the default ``SerializerRegistry`` when
its class body runs.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, List, Optional, Type, Union

from typespec_serializers.models import AttributeDeclaration, SerializerDefinition
from typespec_serializers.registry import registry
from typespec_serializers.utils import classify

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.dsl")

SerializerRef = Union[str, Type["BaseSerializer"]]


class Attribute:
    """
    Declares one output attribute of a serializer.

    Can be assigned in the class body or used as a method decorator.
    """

    __slots__ = (
        "name",
        "type",
        "serializer",
        "association",
        "optional",
        "condition",
        "value_from",
        "key",
        "method",
    )

    def __init__(
        self,
        type: Optional[str] = None,
        *,
        serializer: Optional[SerializerRef] = None,
        association: Optional[str] = None,
        optional: bool = False,
        condition: Optional[Union[str, Callable[..., bool]]] = None,
        value_from: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        self.name: Optional[str] = None
        self.type: Optional[str] = type
        self.serializer: Optional[SerializerRef] = serializer
        self.association: Optional[str] = association
        self.optional: bool = optional
        self.condition: Optional[Union[str, Callable[..., bool]]] = condition
        self.value_from: Optional[str] = value_from
        self.key: Optional[str] = key
        self.method: Optional[Callable[..., Any]] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __call__(self, method: Callable[..., Any]) -> "Attribute":
        self.method = method
        self.name = method.__name__
        return self

    def declaration(self, owner: type) -> AttributeDeclaration:
        """Freeze this attribute into an ``AttributeDeclaration``."""
        if self.name is None:
            raise TypeError(f"Attribute declared on {owner.__qualname__} has no name.")

        serializer_name: Optional[str] = None
        serializer_module: Optional[str] = None
        if isinstance(self.serializer, str):
            serializer_name = self.serializer
            serializer_module = owner.__module__
        elif self.serializer is not None:
            serializer_name = self.serializer.__qualname__
            serializer_module = self.serializer.__module__

        return AttributeDeclaration(
            name=self.name,
            key=self.key or self.name,
            type=self.type,
            serializer=serializer_name,
            serializer_module=serializer_module,
            association=self.association,
            optional=self.optional,
            conditional=self.condition is not None,
            value_from=self.value_from or self.name,
        )

    def __repr__(self) -> str:
        return f"<Attribute {self.name} type={self.type!r} association={self.association!r}>"


# ---------------------------------------------------------------------------
# Declaration helpers
# ---------------------------------------------------------------------------


def attribute(type: Optional[str] = None, **options: Any) -> Attribute:
    """Plain attribute, optionally with an explicit TypeSpec type."""
    return Attribute(type, **options)


def has_one(serializer: SerializerRef, **options: Any) -> Attribute:
    """Attribute rendered with a nested serializer."""
    return Attribute(serializer=serializer, association="one", **options)


def has_many(serializer: SerializerRef, **options: Any) -> Attribute:
    """List of objects rendered with a nested serializer."""
    return Attribute(serializer=serializer, association="many", **options)


def flat_one(serializer: SerializerRef, **options: Any) -> Attribute:
    """Merges the nested serializer's attributes into this one."""
    return Attribute(serializer=serializer, association="flat", **options)


# ---------------------------------------------------------------------------
# BaseSerializer
# ---------------------------------------------------------------------------


class BaseSerializer:
    """Root of every serializer; collects declarations of its subclasses."""

    __tsp_attributes__: Dict[str, Attribute] = {}
    __tsp_options__: Dict[str, Any] = {}

    def __init_subclass__(
        cls,
        *,
        model: Optional[str] = None,
        object_as: Optional[str] = None,
        typespec_from: Optional[str] = None,
        transform_keys: Optional[Callable[[str], str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)

        # Parents first, so an override keeps the position of the original.
        attributes: Dict[str, Attribute] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Attribute):
                    attributes[name] = value
        cls.__tsp_attributes__ = attributes

        options: Dict[str, Any] = dict(cls.__tsp_options__)
        if model is not None or object_as is not None:
            options["model"] = model or object_as
        if object_as is not None:
            options["object_as"] = object_as
        if typespec_from is not None:
            options["typespec_from"] = typespec_from
        if transform_keys is not None:
            options["transform_keys"] = transform_keys
        cls.__tsp_options__ = options

        registry.register(cls)

    @classmethod
    def tsp_definition(cls) -> SerializerDefinition:
        """Build the immutable definition used by the generator."""
        module: Any = sys.modules.get(cls.__module__)
        model: Optional[str] = cls.__tsp_options__.get("model")
        if model and not model[0].isupper():
            model = classify(model)

        return SerializerDefinition(
            name=cls.__qualname__,
            module=cls.__module__,
            source_file=getattr(module, "__file__", None),
            attributes=[attr.declaration(cls) for attr in cls.__tsp_attributes__.values()],
            model_name=model,
            typespec_from=cls.__tsp_options__.get("typespec_from"),
            transform_keys=cls.__tsp_options__.get("transform_keys"),
        )


registry.register_root(BaseSerializer)

# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Attribute",
    "BaseSerializer",
    "attribute",
    "has_one",
    "has_many",
    "flat_one",
]
