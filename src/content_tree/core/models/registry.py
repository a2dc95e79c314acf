"""
Module: registry

Purpose:
    Maps model names to ContentNode subclasses so the Store can build the
    right class for each record. A record's model name is its _model,
    _component or _type, in that order, taking the first one registered.

Key Functions:
    - register(): Register a model class under one or more names
    - get_model_name(): Derive the model name for a record
    - get_model_class(): Resolve the class used to wrap a record

Used By:
    - core.models.kinds (built-in registrations)
    - content_tree.store.Store.add
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Mapping, Type, Union

from .node import ContentNode

logger = logging.getLogger(__name__)


class ModelRegistryError(LookupError):
    """Raised when no model name can be derived from a record."""


_NAME_KEYS = ("_model", "_component", "_type")

_registry: dict[str, Type[ContentNode]] = {}
_registry_lock = threading.Lock()


def register(names: Union[str, Iterable[str]], model_class: Type[ContentNode]) -> Type[ContentNode]:
    """
    Register a model class.

    Args:
        names: One name, a space separated string of names, or a list
        model_class: ContentNode subclass to construct for those names

    Returns:
        model_class, so register can decorate a class definition

    Raises:
        TypeError: If model_class is not a ContentNode subclass
    """
    if isinstance(names, str):
        names = names.split()
    if not (isinstance(model_class, type) and issubclass(model_class, ContentNode)):
        raise TypeError(f"The registered model {model_class!r} is not a ContentNode subclass")
    with _registry_lock:
        for name in names:
            if name in _registry and _registry[name] is not model_class:
                logger.debug(f"Replacing model for {name!r}: {_registry[name].__name__} -> {model_class.__name__}")
            _registry[name] = model_class
    return model_class


def unregister(name: str) -> None:
    with _registry_lock:
        _registry.pop(name, None)


def is_registered(name: str) -> bool:
    return name in _registry


def get_model_name(record: Union[str, Mapping[str, Any]]) -> str:
    """
    Derive the model name for a record.

    Returns the first of _model, _component, _type that is registered,
    otherwise the last one present.

    Raises:
        ModelRegistryError: If the record has none of those keys
    """
    if isinstance(record, str):
        return record
    names = [record[key] for key in _NAME_KEYS if isinstance(record.get(key), str) and record.get(key)]
    if not names:
        raise ModelRegistryError(f"Cannot derive model name from record {record.get('_id')!r}")
    for name in names:
        if name in _registry:
            return name
    return names[-1]


def get_model_class(record: Union[str, Mapping[str, Any]]) -> Type[ContentNode]:
    """Class for a record; the generic ContentNode when nothing is registered."""
    name = get_model_name(record)
    model_class = _registry.get(name)
    if model_class is None:
        logger.error(f"A model for {name!r} isn't registered, using ContentNode")
        return ContentNode
    return model_class
