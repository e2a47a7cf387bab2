import io

from farmrelay.debug import DebugLogger


def _logger(**kwargs):
    stream = io.StringIO()
    return DebugLogger(stream=stream, **kwargs), stream


def test_dbg_prefix():
    logger, stream = _logger()
    logger.dbg("hello")
    assert stream.getvalue() == "    hello\n"


def test_dbg_converts_non_strings():
    logger, stream = _logger()
    logger.dbg(5)
    assert stream.getvalue() == "    5\n"


def test_level_zero_hides_dbg1_and_dbg2():
    logger, stream = _logger(level=0)
    logger.dbg1("one")
    logger.dbg2("two")
    assert stream.getvalue() == ""


def test_level_one_shows_dbg1_only():
    logger, stream = _logger(level=1)
    logger.dbg1("one")
    logger.dbg2("two")
    assert stream.getvalue() == "[1] one\n"


def test_level_two_shows_both():
    logger, stream = _logger(level=2)
    logger.dbg1("one")
    logger.dbg2("two")
    assert stream.getvalue() == "[1] one\n[2] two\n"


def test_disabled_writes_nothing_but_feeds_display():
    shown = []
    logger, stream = _logger(enabled=False, level=2, display=shown.append)
    logger.dbg("msg")
    logger.dbg1("x")
    assert stream.getvalue() == ""
    assert shown == ["msg"]


def test_display_gets_messages_when_enabled():
    shown = []
    logger, stream = _logger(display=shown.append)
    logger.dbg(42)
    assert shown == ["42"]
    assert stream.getvalue() == "    42\n"