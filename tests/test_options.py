import pytest

from swiftsockets.options import ArgType, LongOption, OptionError, OptionParser

LONGOPTS = [
    LongOption("amend", "a", ArgType.NONE),
    LongOption("brief", "b", ArgType.NONE),
    LongOption("color", "c", ArgType.REQUIRED),
    LongOption("delay", "d", ArgType.OPTIONAL),
    LongOption("erase", None, ArgType.NONE),
]


def test_short_options_in_sequence():
    parser = OptionParser(["prog", "-a", "-b", "x"])
    assert parser.parse("ab:") == "a"
    assert parser.parse("ab:") == "b"
    assert parser.optarg == "x"
    assert parser.parse("ab:") is None


def test_grouped_short_flags():
    parser = OptionParser(["prog", "-ab"])
    assert parser.parse("ab") == "a"
    assert parser.subopt == 1
    assert parser.parse("ab") == "b"
    assert parser.subopt == 0
    assert parser.optind == 2


def test_required_argument_attached():
    parser = OptionParser(["prog", "-bvalue"])
    assert parser.parse("b:") == "b"
    assert parser.optarg == "value"


def test_missing_required_argument_raises():
    parser = OptionParser(["prog", "-b"])
    with pytest.raises(OptionError) as info:
        parser.parse("b:")
    assert info.value.message == "option requires an argument -- 'b'"
    assert info.value.option == "b"
    assert parser.errmsg == info.value.message


def test_invalid_option_raises_and_advances():
    parser = OptionParser(["prog", "-z", "-a"])
    with pytest.raises(OptionError) as info:
        parser.parse("a")
    assert str(info.value) == "invalid option -- 'z'"
    assert parser.parse("a") == "a"


def test_colon_is_never_an_option():
    parser = OptionParser(["prog", "-:"])
    with pytest.raises(OptionError):
        parser.parse("a:")


def test_optional_argument():
    parser = OptionParser(["prog", "-cfoo", "-c", "bar"])
    assert parser.parse("c::") == "c"
    assert parser.optarg == "foo"
    assert parser.parse("c::") == "c"
    assert parser.optarg is None
    assert parser.next_arg() == "bar"


def test_permutation_moves_non_options_to_end():
    parser = OptionParser(["prog", "file", "-a", "other"])
    assert parser.parse("a") == "a"
    assert parser.parse("a") is None
    assert parser.argv == ["prog", "-a", "file", "other"]
    assert parser.next_arg() == "file"
    assert parser.next_arg() == "other"
    assert parser.next_arg() is None


def test_without_permutation_stops_at_first_argument():
    parser = OptionParser(["prog", "file", "-a"], permute=False)
    assert parser.parse("a") is None
    assert parser.next_arg() == "file"
    assert parser.parse("a") == "a"


def test_dashdash_ends_options():
    parser = OptionParser(["prog", "-a", "--", "-b"])
    assert parser.parse("ab") == "a"
    assert parser.parse("ab") is None
    assert parser.next_arg() == "-b"


def test_long_options():
    argv = ["prog", "--amend", "--color=red", "--color", "blue", "--delay", "--erase"]
    parser = OptionParser(argv)
    assert parser.parse_long(LONGOPTS).longname == "amend"
    assert parser.longindex == 0
    option = parser.parse_long(LONGOPTS)
    assert option.shortname == "c"
    assert parser.optarg == "red"
    assert parser.parse_long(LONGOPTS).longname == "color"
    assert parser.optarg == "blue"
    assert parser.parse_long(LONGOPTS).longname == "delay"
    assert parser.optarg is None
    option = parser.parse_long(LONGOPTS)
    assert option.longname == "erase"
    assert parser.optopt is None
    assert parser.parse_long(LONGOPTS) is None


def test_long_fallback_to_short():
    parser = OptionParser(["prog", "-c", "red", "-b"])
    option = parser.parse_long(LONGOPTS)
    assert option.longname == "color"
    assert parser.optarg == "red"
    assert parser.longindex == 2
    assert parser.parse_long(LONGOPTS).longname == "brief"


def test_long_option_with_unwanted_argument():
    parser = OptionParser(["prog", "--amend=x"])
    with pytest.raises(OptionError) as info:
        parser.parse_long(LONGOPTS)
    assert info.value.message == "option takes no arguments -- 'amend'"


def test_unknown_long_option():
    parser = OptionParser(["prog", "--nope=3"])
    with pytest.raises(OptionError) as info:
        parser.parse_long(LONGOPTS)
    assert info.value.message == "invalid option -- 'nope=3'"


def test_long_option_missing_argument():
    parser = OptionParser(["prog", "--color"])
    with pytest.raises(OptionError) as info:
        parser.parse_long(LONGOPTS)
    assert info.value.message == "option requires an argument -- 'color'"


def test_long_permutation():
    parser = OptionParser(["prog", "input", "--brief"])
    assert parser.parse_long(LONGOPTS).longname == "brief"
    assert parser.parse_long(LONGOPTS) is None
    assert parser.argv == ["prog", "--brief", "input"]


def test_error_message_is_truncated():
    parser = OptionParser(["prog", "--" + "x" * 100])
    with pytest.raises(OptionError) as info:
        parser.parse_long(LONGOPTS)
    message = info.value.message
    assert message.startswith("invalid option -- 'xxx")
    assert message.endswith("'")
    assert len(message) <= 63