"""
Package-wide useful routines
============================

"""
from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")  # pylint: disable=invalid-name


def get_all_subclasses(parent):
    """Get set of subclasses recursively"""
    subclasses = set()
    for subclass in parent.__subclasses__():
        subclasses.add(subclass)
        subclasses |= get_all_subclasses(subclass)

    return subclasses


def get_all_types(parent_cls, cls_name):
    """Get all subclasses and lowercase subclass names"""
    types = list(get_all_subclasses(parent_cls))
    types = [class_ for class_ in types if class_.__name__ != cls_name]

    return {class_.__name__.lower(): class_ for class_ in types}


def _import_modules(cls):
    # Get types advertised through entry points!
    for entry_point in entry_points(group=cls.__name__):
        entry_point.load()
        log.debug(
            "Found a %s %s from distribution: %s",
            entry_point.name,
            cls.__name__,
            entry_point.value,
        )


class GenericFactory(Generic[T]):
    """Factory to create instances of classes inheriting a given ``base`` class.

    The factory can instantiate children of the base class at any level of inheritance.
    The children class must have different names (capitalization insensitive). To instantiate
    objects with the factory, use ``factory.create('name_of_the_children_class')`` passing the name
    of the children class to instantiate.

    To support classes even when they are not imported, register them in the ``entry_points``
    of the package's ``setup.py``, under a group named after the base class. The factory will
    import all registered classes in the entry_points before looking for available children.

    Parameters
    ----------
    base: class
       Base class of all children that the factory can instantiate.

    """

    def __init__(self, base: type[T]):
        self.base = base

    def create(self, of_type: str, *args, **kwargs) -> T:
        """Create an object, instance of ``self.base``

        Parameters
        ----------
        of_type: str
            Name of class, subclass of ``self.base``. Capitalization insensitive

        args: *
            Positional arguments to construct the given class.

        kwargs: **
            Keyword arguments to construct the given class.
        """

        constructor = self.get_class(of_type)
        return constructor(*args, **kwargs)

    def get_class(self, of_type: str) -> type[T]:
        """Get the class object (not instantiated)

        Parameters
        ----------
        of_type: str
            Name of class, subclass of ``self.base``. Capitalization insensitive
        """
        of_type = of_type.lower()
        constructors = self.get_classes()

        if of_type not in constructors:
            raise NotImplementedError(
                f"Could not find implementation of {self.base.__name__}, type = '{of_type}'\n"
                "Currently, there is an implementation for types:\n"
                f"{sorted(constructors.keys())}"
            )

        return constructors[of_type]

    def get_classes(self) -> dict[str, type[T]]:
        """Get children classes of ``self.base``"""
        _import_modules(self.base)
        return get_all_types(self.base, self.base.__name__)
