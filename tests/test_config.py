import pytest

from farmrelay.config import load_config, parse_config

GATEWAY = """\
//  GATEWAY CONFIGURATION

//Addresses
#define UNIT_MAC           0x01  // The address of this gateway
#define ESPNOW_NEIGHBOR_2  0x02  // Address of ESP-NOW neighbor #2

// Interfaces
#define USE_ESPNOW
//#define USE_LORA
//#define USE_WIFI  // Will cause errors if used with ESP-NOW.

#define ESPNOWG_ACT    sendSerial();
#define MQTT_ACT
#define SERIAL_ACT     sendESPNowNbr(2); sendESPNowPeers();

#define LORA_TXPWR 17   // LoRa TX power in dBm
///#define USE_OLED
#define OLED_HEADER "FDRS"

#define TIME_SERVER       "0.us.pool.ntp.org"       // NTP time server
#define STD_OFFSET      (-6)                // offset, see https://time.is
#define DST_OFFSET      (STD_OFFSET + 1)
"""


@pytest.fixture
def config():
    return parse_config(GATEWAY)


def test_defined_flags(config):
    assert config.has("USE_ESPNOW")
    assert not config.has("USE_LORA")
    assert not config.has("USE_WIFI")
    assert not config.has("USE_OLED")


def test_empty_define_is_present(config):
    assert config.has("MQTT_ACT")
    assert config.get("MQTT_ACT") == ""


def test_hex_values(config):
    assert config.get_int("UNIT_MAC") == 1
    assert config.get_int("ESPNOW_NEIGHBOR_2") == 2


def test_decimal_value(config):
    assert config.get_int("LORA_TXPWR") == 17


def test_expression_with_reference(config):
    assert config.get_int("STD_OFFSET") == -6
    assert config.get_int("DST_OFFSET") == -5


def test_string_value_loses_quotes_and_keeps_slashes(config):
    assert config.get("TIME_SERVER") == "0.us.pool.ntp.org"
    assert config.get("OLED_HEADER") == "FDRS"


def test_action_text(config):
    assert config.get("SERIAL_ACT") == "sendESPNowNbr(2); sendESPNowPeers();"
    assert config.get("ESPNOWG_ACT") == "sendSerial();"


def test_defaults_for_missing(config):
    assert config.get("WIFI_SSID", "none") == "none"
    assert config.get_int("DBG_LEVEL", 0) == 0


def test_non_integer_raises(config):
    with pytest.raises(ValueError):
        config.get_int("OLED_HEADER")


def test_cycle_raises():
    config = parse_config("#define A B\n#define B A\n")
    with pytest.raises(ValueError):
        config.get_int("A")


def test_undef_removes():
    config = parse_config("#define X 3\n#undef X\n")
    assert not config.has("X")


def test_block_comment_and_continuation():
    config = parse_config("#define Y (2 /* two */ + \\\n 3)\n")
    assert config.get_int("Y") == 5


def test_load_config(tmp_path):
    path = tmp_path / "fdrs_node_config.h"
    path.write_text(
        "#include <fdrs_globals.h>\n#define READING_ID    2\n#define USE_LORA\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.get_int("READING_ID") == 2
    assert "USE_LORA" in config