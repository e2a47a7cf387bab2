from farmrelay.checkconfig import (
    HEADER_AND_FOOTER,
    SEPARATOR_LINE,
    activated_protocols,
    check_config,
    espnow_details,
    logging_information,
    lora_details,
    main,
    obfuscate_password,
    wifi_details,
)
from farmrelay.config import parse_config

GATEWAY = """
#define UNIT_MAC           0x1A
#define ESPNOW_NEIGHBOR_1  0x00
#define ESPNOW_NEIGHBOR_2  0x02
#define LORA_NEIGHBOR_1    0x00
#define LORA_NEIGHBOR_2    0x03
#define USE_ESPNOW
"""

NODE = """
#define READING_ID    2
#define GTWY_MAC      0x01
#define USE_LORA
#define LORA_TXPWR 17
#define LORA_ACK
"""


def test_obfuscate_password_hides_every_character():
    result = obfuscate_password("password")
    assert len(result) == len("password")
    assert set(result) == {"*"}
    assert obfuscate_password("") == ""


def test_activated_protocols_node():
    lines = activated_protocols(parse_config(NODE))
    assert lines[:3] == [SEPARATOR_LINE, "ACTIVATED PROTOCOLS", SEPARATOR_LINE]
    assert "LoRa   : ENABLED" in lines
    assert "ESPNow : DISABLED" in lines
    assert "WiFi   : DISABLED" in lines
    assert lines[-1] == "Using DHCP"


def test_activated_protocols_warns_on_wifi_and_espnow():
    lines = activated_protocols(parse_config("#define USE_WIFI\n#define USE_ESPNOW\n"))
    assert any(line.startswith("WARNING: You must not use USE_ESPNOW") for line in lines)


def test_logging_both_enabled_warns():
    lines = logging_information(parse_config(
        '#define USE_SD_LOG\n#define USE_FS_LOG\n#define LOG_FILENAME "fdrs.log"\n'))
    assert lines[0] == SEPARATOR_LINE
    assert any("AND file system is active" in line for line in lines)
    assert "Logging to SD-Card    : enabled" in lines
    assert "log filename          : fdrs.log" in lines
    assert "log buffer delay in ms: NOT SPECIFIED - check config!" in lines


def test_logging_disabled():
    lines = logging_information(parse_config(""))
    assert lines[-2:] == ["Logging to SD-Card    : disabled", "Logging to file system: disabled"]


def test_espnow_details_gateway_neighbors():
    lines = espnow_details(parse_config(GATEWAY))
    assert "Neighbor 1 address: 0" in lines
    assert "Neighbor 2 address: 2" in lines


def test_espnow_details_empty_for_node():
    assert espnow_details(parse_config(NODE)) == []


def test_wifi_details_obfuscates_password():
    text = '#define USE_WIFI\n#define WIFI_SSID "home"\n#define WIFI_PASS "password"\n'
    lines = wifi_details(parse_config(text))
    assert "WiFi SSID used from WIFI_SSID            : home" in lines
    assert ("WiFi password used from WIFI_PASS        : "
            + obfuscate_password("password")) in lines
    assert not any("password" in line and "*" not in line and "WiFi password" in line
                   and line.endswith("password") for line in lines)
    assert lines[-2:] == [SEPARATOR_LINE, SEPARATOR_LINE]


def test_wifi_details_missing_and_default_port():
    lines = wifi_details(parse_config("#define USE_WIFI\n"))
    assert any(line.startswith("NO MQTT address defined!") for line in lines)
    assert any(line.startswith("Using default MQTT port") and line.endswith("1883")
               for line in lines)


def test_wifi_details_global_setting():
    lines = wifi_details(parse_config('#define USE_WIFI\n#define GLOBAL_MQTT_ADDR "10.0.0.8"\n'))
    assert "MQTT address used from GLOBAL_MQTT_ADDR  : 10.0.0.8" in lines


def test_wifi_details_empty_without_wifi():
    assert wifi_details(parse_config(NODE)) == []


def test_lora_retries_out_of_range():
    lines = lora_details(parse_config(NODE + "#define LORA_RETRIES 5\n"))
    assert "Number of ack retries (LORA_RETRIES)          : 5" in lines
    assert any("not within allowed range [0 - 3]" in line for line in lines)


def test_lora_retries_in_range():
    lines = lora_details(parse_config(NODE + "#define LORA_RETRIES 2\n"))
    assert "Number of ack retries (LORA_RETRIES)          : within allowed range." in lines
    assert "LoRa acknowledgement used from LORA_ACK       : enabled" in lines
    assert "LoRa TXPWR used from LORA_TXPWR               : 17" in lines


def test_check_config_gateway():
    lines = check_config(parse_config(GATEWAY))
    assert lines[:3] == [HEADER_AND_FOOTER, "NODE CONFIGURATION OVERVIEW", HEADER_AND_FOOTER]
    assert "Device Type       : Gateway" in lines
    assert "Gateway ID      : 1a" in lines
    assert lines[-1] == ""
    assert lines[-3] == "NODE CONFIGURATION OVERVIEW END"


def test_check_config_node_and_unknown():
    node = check_config(parse_config(NODE))
    assert "Device Type       : Node" in node
    assert "Reading ID      : 2" in node
    unknown = check_config(parse_config(""))
    assert "Device Type       : UNKNOWN!" in unknown


def test_main_prints_overview(tmp_path, capsys):
    path = tmp_path / "fdrs_node_config.h"
    path.write_text(NODE, encoding="utf-8")
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert "NODE CONFIGURATION OVERVIEW END" in out


def test_main_missing_file(tmp_path):
    assert main([str(tmp_path / "absent.h")]) == 1