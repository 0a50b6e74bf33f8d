"""
Registry of command line settings
=================================

Typed, mutable settings that can be serialized to a flat list of ``--name=value`` flags and
parsed back from it.

The searcher mutates the registry while sampling and snapshots it with
:meth:`CmdOptions.unparse`. Applying a snapshot with :meth:`CmdOptions.parse` restores the
exact state it was taken from.

"""
import logging
import numbers
from collections import OrderedDict

log = logging.getLogger(__name__)

TRUE_STRINGS = ("true", "1", "yes", "y", "on")
FALSE_STRINGS = ("false", "0", "no", "n", "off")


def _to_bool(value):
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        raise ValueError(f"Cannot interpret {value!r} as a boolean")

    return bool(value)


class CmdOption:
    """A named setting holding a value of a fixed type.

    Parameters
    ----------
    name: str
        Name of the setting, used as ``--name`` on the command line.
    default: object
        Initial value.
    option_type: callable, optional
        Function casting values to the type of the setting, such as ``int`` or ``float``.
        Defaults to ``type(default)``.
    help: str, optional
        Documentation of the setting.

    """

    def __init__(self, name, default, option_type=None, help=None):
        # pylint: disable=redefined-builtin
        if name.startswith("-") or "=" in name:
            raise ValueError(f"Invalid option name: {name}")

        self.name = name
        if option_type is None:
            option_type = type(default)
        if option_type is bool:
            option_type = _to_bool
        self.option_type = option_type
        self.default = self._cast(default)
        self.value = self.default
        self.help = help if help is not None else "Undocumented"

    def _cast(self, value):
        try:
            return self.option_type(value)
        except (TypeError, ValueError) as e:
            raise TypeError(
                f"Option {self.name} cannot be set to {value} with type {type(value)}"
            ) from e

    def set_value(self, value):
        """Set the value of the setting, casting it to the type of the option."""
        self.value = self._cast(value)

    def parse_value(self, text):
        """Set the value of the setting from its string representation."""
        self.set_value(text)

    def format_value(self):
        """Return the string representation of the value, as used in flags"""
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, numbers.Real) and not isinstance(
            self.value, numbers.Integral
        ):
            return repr(float(self.value))

        return str(self.value)

    def unparse(self):
        """Return the flag ``--name=value`` describing the current value."""
        return f"--{self.name}={self.format_value()}"

    def __repr__(self):
        return f"CmdOption(name={self.name}, value={self.value!r})"


class CmdOptions:
    """Ordered registry of :class:`CmdOption`.

    Options are accessible as attributes or with dict-like syntax.

    Examples
    --------
    >>> cmds = CmdOptions()
    >>> option = cmds.add_option('learning_rate', 0.1)
    >>> cmds.learning_rate.value
    0.1
    >>> cmds.parse(['--learning_rate=0.01'])
    >>> cmds.unparse()
    ('--learning_rate=0.01',)

    """

    def __init__(self):
        self._options = OrderedDict()

    def add_option(self, name, default, option_type=None, help=None):
        """Register a new setting and return it.

        .. seealso:: :class:`CmdOption` for the parameters.

        """
        # pylint: disable=redefined-builtin
        if name in self._options:
            raise ValueError(f"Registry already contains option {name}")

        option = CmdOption(name, default, option_type=option_type, help=help)
        self._options[name] = option
        return option

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        try:
            return self._options[name]
        except KeyError as e:
            raise AttributeError(f"Registry does not have an option '{name}'.") from e

    def __getitem__(self, name):
        return self._options[name]

    def __contains__(self, item):
        if isinstance(item, CmdOption):
            return self._options.get(item.name) is item

        return item in self._options

    def __iter__(self):
        return iter(self._options.values())

    def __len__(self):
        return len(self._options)

    @property
    def values(self):
        """Registered options, in order of registration"""
        return list(self._options.values())

    def parse(self, args):
        """Set the options from a list of flags.

        Flags may have the form ``--name=value`` or ``--name value``. A bare ``--name``
        sets a boolean option to True.

        Raises
        ------
        KeyError
            If a flag does not match any registered option.
        ValueError
            If an element of the list is neither a flag nor the value of a flag.

        """
        for name, text in self._parse_arguments(args):
            if name not in self._options:
                raise KeyError(f"Unknown option: --{name}")

            option = self._options[name]
            if text is None:
                option.set_value(True)
            else:
                option.parse_value(text)

        log.debug("Parsed settings: %s", self.unparse())

    @staticmethod
    def _parse_arguments(args):
        parsed = []
        for item in args:
            if item.startswith("--"):
                name, sep, text = item[2:].partition("=")
                parsed.append([name, text if sep else None])
            elif parsed and parsed[-1][1] is None:
                parsed[-1][1] = item
            else:
                raise ValueError(f"Unexpected argument: {item}")

        return parsed

    def unparse(self):
        """Serialize every option as a tuple of ``--name=value`` flags."""
        return tuple(option.unparse() for option in self._options.values())

    def __repr__(self):
        return f"CmdOptions({list(self.unparse())})"
