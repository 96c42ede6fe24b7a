import copy


def optional(t):
    if isinstance(t, tuple):
        return t + (type(None), )
    return (t, type(None))


class SlottedClassChecker(type):
    def __new__(cls, name, bases, namespace):
        cls_attrs = namespace.get("__attrs__", tuple())
        cls_types = dict(namespace.get("__types__", {}))
        cls_defaults = dict(namespace.get("__defaults__", {}))
        cls_extra_attrs = set(namespace.get("__extra_attrs__", set()))

        assert isinstance(cls_attrs, tuple)

        # Parent attributes come first so positional arguments follow the
        # declaration order of the class hierarchy.
        found_slots = False
        for base in bases:
            assert issubclass(base, SlottedClass), "{} inherits from class {} which must inherit from SlottedClass".format(name, base.__name__)
            if getattr(base, "__slots__", None):
                if found_slots:
                    raise RuntimeError("{} inherits slots from more than one SlottedClass".format(name))
                found_slots = True

            cls_attrs = getattr(base, "__attrs__", tuple()) + cls_attrs
            for attr, t in getattr(base, "__types__", {}).items():
                cls_types.setdefault(attr, t)
            for attr, val in getattr(base, "__defaults__", {}).items():
                cls_defaults.setdefault(attr, val)
            cls_extra_attrs |= getattr(base, "__extra_attrs__", set())

        namespace["__attrs__"] = cls_attrs
        namespace["__types__"] = cls_types
        namespace["__defaults__"] = cls_defaults
        namespace["__extra_attrs__"] = cls_extra_attrs

        # Only the attributes new to this class get slots; inherited ones
        # already live in a base.
        inherited = set()
        for base in bases:
            inherited.update(getattr(base, "__all_slots__", ()))
        all_slots = cls_attrs + tuple(sorted(cls_extra_attrs))
        namespace["__all_slots__"] = all_slots
        namespace["__slots__"] = tuple(a for a in all_slots if a not in inherited)

        attrs = set(all_slots)
        for attr in cls_types:
            assert attr in attrs, "type '{}' not in __attrs__ for {}".format(attr, name)
        for attr in cls_defaults:
            assert attr in attrs, "default '{}' not in __attrs__ for {}".format(attr, name)

        return type.__new__(cls, name, bases, namespace)


class SlottedClass(metaclass=SlottedClassChecker):
    # Ordered attributes
    __attrs__ = tuple()

    # Expected types
    __types__ = {}

    # Default values for types
    __defaults__ = {}

    # Unordered attributes, excluded from equality
    __extra_attrs__ = set()

    def __init__(self, *args, **kwargs):
        if len(args) > len(self.__all_slots__):
            raise TypeError("{} takes at most {} arguments ({} given)".format(
                type(self).__name__, len(self.__all_slots__), len(args)
            ))

        for i, val in enumerate(args):
            self.assign_and_check(self.__all_slots__[i], val)

        for attr in self.__all_slots__[len(args):]:
            if attr in kwargs:
                val = kwargs[attr]
            elif attr in self.__defaults__:
                val = copy.copy(self.__defaults__[attr])
            else:
                raise TypeError("{} missing required argument '{}'".format(
                    type(self).__name__, attr
                ))
            self.assign_and_check(attr, val)

    def assign_and_check(self, attr, val):
        def __raise_type_error(expected_t, found_t):
            raise TypeError("Expected '{}' of {} to be type {}. Found {}.".format(
                attr, type(self).__name__, expected_t, found_t
            ))

        def __recursive_check(val, expected, original):
            """Recursively check container items."""
            if isinstance(expected, list):
                if not isinstance(val, list):
                    __raise_type_error(original, type(val))
                for item in val:
                    __recursive_check(item, expected[0], original)
            elif isinstance(expected, dict):
                if not isinstance(val, dict):
                    __raise_type_error(original, type(val))
                key_t, val_t = next(iter(expected.items()))
                for k, v in val.items():
                    __recursive_check(k, key_t, original)
                    __recursive_check(v, val_t, original)
            elif not isinstance(val, expected):
                __raise_type_error(original, type(val))

        if attr in self.__types__:
            expected = self.__types__[attr]
            __recursive_check(val, expected, expected)

        setattr(self, attr, val)

    def __eq__(self, other):
        if type(other) is not type(self):
            return False
        return all(
            getattr(self, attr) == getattr(other, attr)
            for attr in self.__attrs__
        )

    def __ne__(self, other):
        return not (self == other)

    def __hash__(self):
        return hash((type(self).__name__, ) + tuple(
            _hashable(getattr(self, attr)) for attr in self.__attrs__
        ))

    def __repr__(self):
        return "{}({})".format(
            type(self).__name__,
            ", ".join(repr(getattr(self, attr)) for attr in self.__attrs__)
        )


def _hashable(val):
    if isinstance(val, list):
        return tuple(_hashable(v) for v in val)
    if isinstance(val, dict):
        return tuple(sorted((k, _hashable(v)) for k, v in val.items()))
    return val
