"""A reentrant getopt-style command line option parser.

Short options follow the getopt option-string syntax: a character alone
takes no argument, one colon means a required argument and two colons an
optional one. GNU-style long options are handled by :meth:`OptionParser.parse_long`.
By default non-option arguments are moved to the end of ``argv`` as parsing
goes on.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence

MSG_INVALID = "invalid option"
MSG_MISSING = "option requires an argument"
MSG_TOOMANY = "option takes no arguments"

# Mirrors the fixed-size message buffer: text beyond this is cut off.
_ERRMSG_LIMIT = 62


class ArgType(enum.IntEnum):
    """Whether an option takes an argument."""

    NONE = 0
    REQUIRED = 1
    OPTIONAL = 2


@dataclass(frozen=True)
class LongOption:
    """A long option, with an optional short alias."""

    longname: Optional[str]
    shortname: Optional[str] = None
    argtype: ArgType = ArgType.NONE


class OptionError(Exception):
    """Raised for an unknown option or a wrong number of arguments."""

    def __init__(self, message: str, option: Optional[str]) -> None:
        super().__init__(message)
        self.message = message
        self.option = option


def _is_dashdash(arg: Optional[str]) -> bool:
    return arg == "--"


def _is_shortopt(arg: Optional[str]) -> bool:
    return arg is not None and len(arg) >= 2 and arg[0] == "-" and arg[1] != "-"


def _is_longopt(arg: Optional[str]) -> bool:
    return arg is not None and len(arg) >= 3 and arg.startswith("--")


def _argtype(optstring: str, char: str) -> Optional[ArgType]:
    if char == ":":
        return None
    index = optstring.find(char)
    if index < 0:
        return None
    count = 0
    if optstring[index + 1 : index + 2] == ":":
        count += 2 if optstring[index + 2 : index + 3] == ":" else 1
    return ArgType(count)


def _longopts_match(longname: Optional[str], option: str) -> bool:
    if longname is None:
        return False
    return option.split("=", 1)[0] == longname


def _longopts_arg(option: str) -> Optional[str]:
    _, sep, value = option.partition("=")
    return value if sep else None


def _optstring_from_long(longopts: Sequence[LongOption]) -> str:
    return "".join(
        lo.shortname + ":" * int(lo.argtype) for lo in longopts if lo.shortname
    )


class OptionParser:
    """Parser state over one argument vector.

    ``argv[0]`` is the program name and is never parsed. After each call,
    :attr:`optopt` holds the option found, :attr:`optarg` its argument and
    :attr:`optind` the index of the next element to look at.
    """

    def __init__(self, argv: Sequence[str], permute: bool = True) -> None:
        self.argv: list[str] = list(argv)
        self.permute = permute
        self.optind = 1
        self.optopt: Optional[str] = None
        self.optarg: Optional[str] = None
        self.errmsg = ""
        self.subopt = 0
        self.longindex = -1

    def _at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.argv):
            return self.argv[index]
        return None

    def _error(self, message: str, data: Optional[str]) -> OptionError:
        text = (message + " -- '" + (data or ""))[:_ERRMSG_LIMIT] + "'"
        self.errmsg = text
        return OptionError(text, self.optopt)

    def _permute(self, index: int) -> None:
        self.argv.insert(self.optind - 1, self.argv.pop(index))

    def parse(self, optstring: str) -> Optional[str]:
        """Return the next short option, or None when options are done.

        Raises :class:`OptionError` on an invalid option or a missing
        argument; parsing may continue afterwards.
        """
        option = self._at(self.optind)
        self.errmsg = ""
        self.optopt = None
        self.optarg = None
        if option is None:
            return None
        if _is_dashdash(option):
            self.optind += 1
            return None
        if not _is_shortopt(option):
            if not self.permute:
                return None
            index = self.optind
            self.optind += 1
            try:
                return self.parse(optstring)
            finally:
                self._permute(index)
                self.optind -= 1

        rest = option[self.subopt + 1 :]
        char = rest[0]
        tail = rest[1:]
        self.optopt = char
        argtype = _argtype(optstring, char)
        following = self._at(self.optind + 1)

        if argtype is None:
            self.optind += 1
            raise self._error(MSG_INVALID, char)
        if argtype is ArgType.NONE:
            if tail:
                self.subopt += 1
            else:
                self.subopt = 0
                self.optind += 1
            return char
        if argtype is ArgType.REQUIRED:
            self.subopt = 0
            self.optind += 1
            if tail:
                self.optarg = tail
            elif following is not None:
                self.optarg = following
                self.optind += 1
            else:
                self.optarg = None
                raise self._error(MSG_MISSING, char)
            return char
        self.subopt = 0
        self.optind += 1
        self.optarg = tail or None
        return char

    def next_arg(self) -> Optional[str]:
        """Step over and return the next non-option argument, or None."""
        option = self._at(self.optind)
        self.subopt = 0
        if option is not None:
            self.optind += 1
        return option

    def _parse_long_fallback(self, longopts: Sequence[LongOption]) -> Optional[LongOption]:
        self.longindex = -1
        result = self.parse(_optstring_from_long(longopts))
        if result is None:
            return None
        matched: Optional[LongOption] = None
        for index, lo in enumerate(longopts):
            if lo.shortname == self.optopt:
                self.longindex = index
                matched = lo
        return matched

    def parse_long(self, longopts: Sequence[LongOption]) -> Optional[LongOption]:
        """Return the next option, long or short, as its :class:`LongOption`.

        Returns None when options are done; :attr:`longindex` holds the
        position of the match within ``longopts``.
        """
        option = self._at(self.optind)
        if option is None:
            return None
        if _is_dashdash(option):
            self.optind += 1
            return None
        if _is_shortopt(option):
            return self._parse_long_fallback(longopts)
        if not _is_longopt(option):
            if not self.permute:
                return None
            index = self.optind
            self.optind += 1
            try:
                return self.parse_long(longopts)
            finally:
                self._permute(index)
                self.optind -= 1

        self.errmsg = ""
        self.optopt = None
        self.optarg = None
        option = option[2:]
        self.optind += 1
        for index, lo in enumerate(longopts):
            if not _longopts_match(lo.longname, option):
                continue
            self.longindex = index
            self.optopt = lo.shortname
            arg = _longopts_arg(option)
            if lo.argtype is ArgType.NONE and arg is not None:
                raise self._error(MSG_TOOMANY, lo.longname)
            if arg is not None:
                self.optarg = arg
            elif lo.argtype is ArgType.REQUIRED:
                self.optarg = self._at(self.optind)
                if self.optarg is None:
                    raise self._error(MSG_MISSING, lo.longname)
                self.optind += 1
            return lo
        raise self._error(MSG_INVALID, option)