"""A readable overview of a node's or gateway's configuration, with warnings."""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Optional

from .config import Config, load_config

SEPARATOR_LINE = "--------------------------------------------------------------"
HEADER_AND_FOOTER = "=============================================================="

DEFAULT_MQTT_PORT = 1883

_HINT_ANY = (
    " Please define in fdrs_globals.h (recommended) or in "
    "fdrs_node_config.h / fdrs_gateway_config.h"
)
_HINT_GATEWAY = " Please define in fdrs_globals.h (recommended) or in fdrs_gateway_config.h"
_HINT_NODE = " Please define in fdrs_globals.h (recommended) or in fdrs_node_config.h"


def obfuscate_password(password: str) -> str:
    """Hide a password behind one asterisk per character."""
    return "*" * len(password)


def _small_section_header(text: str) -> list[str]:
    return [SEPARATOR_LINE, text]


def _section_header(text: str) -> list[str]:
    return [SEPARATOR_LINE, text, SEPARATOR_LINE]


def _config_header(text: str) -> list[str]:
    return [HEADER_AND_FOOTER, text, HEADER_AND_FOOTER]


def _hex(config: Config, name: str) -> str:
    value = config.get_int(name)
    if value is None:
        raise ValueError(f"{name} is not defined")
    return format(value, "x")


def _sourced(
    config: Config,
    local: str,
    global_name: str,
    local_label: str,
    global_label: str,
    missing: Optional[str] = None,
    show: Callable[[str], str] = str,
) -> list[str]:
    """One line naming where a setting comes from, or the missing message."""
    if config.has(local):
        return [local_label + show(config.get(local) or "")]
    if config.has(global_name):
        return [global_label + show(config.get(global_name) or "")]
    return [missing] if missing is not None else []


def _uses_wifi(config: Config) -> bool:
    return config.has("USE_WIFI") or (config.has("UNIT_MAC") and config.has("USE_ETHERNET"))


def _log_details(config: Config) -> list[str]:
    lines = []
    if config.has("LOGBUF_DELAY"):
        lines.append("log buffer delay in ms: " + (config.get("LOGBUF_DELAY") or ""))
    else:
        lines.append("log buffer delay in ms: NOT SPECIFIED - check config!")
    if config.has("LOG_FILENAME"):
        lines.append("log filename          : " + (config.get("LOG_FILENAME") or ""))
    else:
        lines.append("log filename          : NOT SPECIFIED - check config!")
    return lines


def logging_information(config: Config) -> list[str]:
    """Which logging methods are active and how they are set up."""
    lines = _section_header("LOG SETTINGS OF DEVICE")
    sd_log = config.has("USE_SD_LOG")
    fs_log = config.has("USE_FS_LOG")
    if sd_log and fs_log:
        lines.append(
            "Logging to SD card AND file system is active! "
            "You should better use only one of them at a time"
        )
    if sd_log:
        lines.append("Logging to SD-Card    : enabled")
        lines.extend(_log_details(config))
    else:
        lines.append("Logging to SD-Card    : disabled")
    if fs_log:
        lines.append("Logging to file system: enabled")
        lines.extend(_log_details(config))
        lines.append(
            "WARNING: Permanently logging to flash memory may destroy "
            "the flash memory of your device!"
        )
    else:
        lines.append("Logging to file system: disabled")
    return lines


def activated_protocols(config: Config) -> list[str]:
    """Which radio and network protocols are enabled."""
    lines = _section_header("ACTIVATED PROTOCOLS")
    wifi = _uses_wifi(config)
    espnow = config.has("USE_ESPNOW")
    lines.append("LoRa   : ENABLED" if config.has("USE_LORA") else "LoRa   : DISABLED")
    lines.append("ESPNow : ENABLED" if espnow else "ESPNow : DISABLED")
    lines.append("WiFi   : ENABLED" if wifi else "WiFi   : DISABLED")
    if wifi and espnow:
        lines.append(
            "WARNING: You must not use USE_ESPNOW and USE_WIFI together! "
            "USE_WIFI is only needed for MQTT!"
        )
    if config.has("USE_STATIC_IPADDRESS"):
        lines.append("Using Static IP Address")
    else:
        lines.append("Using DHCP")
    return lines


def espnow_details(config: Config) -> list[str]:
    """ESP-NOW neighbour addresses of a gateway."""
    if not (config.has("USE_ESPNOW") and config.has("UNIT_MAC")):
        return []
    lines = _small_section_header("ESP-Now Details:")
    lines.append("Neighbor 1 address: " + _hex(config, "ESPNOW_NEIGHBOR_1"))
    lines.append("Neighbor 2 address: " + _hex(config, "ESPNOW_NEIGHBOR_2"))
    return lines


def wifi_details(config: Config) -> list[str]:
    """WiFi, addressing and MQTT broker settings and where each comes from."""
    if not _uses_wifi(config):
        return []
    lines = _small_section_header("WiFi Details:")
    lines += _sourced(
        config, "WIFI_SSID", "GLOBAL_WIFI_SSID",
        "WiFi SSID used from WIFI_SSID            : ",
        "WiFi SSID used from GLOBAL_WIFI_SSID          : ",
        "NO WiFi SSID defined!" + _HINT_ANY,
    )
    lines += _sourced(
        config, "WIFI_PASS", "GLOBAL_WIFI_PASS",
        "WiFi password used from WIFI_PASS        : ",
        "WiFi password used from GLOBAL_WIFI_PASS      : ",
        "NO WiFi password defined!" + _HINT_ANY,
        show=obfuscate_password,
    )
    if config.has("USE_STATIC_IPADDRESS"):
        lines += _sourced(
            config, "HOST_IPADDRESS", "GLOBAL_HOST_IPADDRESS",
            "Host IP Address used from HOST_IPADDRESS            : ",
            "Host IP Address used from GLOBAL_HOST_IPADDRESS     : ",
            "NO Host IP Address defined!" + _HINT_GATEWAY,
        )
        lines += _sourced(
            config, "GW_IPADDRESS", "GLOBAL_GW_IPADDRESS",
            "Gateway IP Address used from GW_IPADDRESS            : ",
            "Gateway IP Address used from GLOBAL_GW_IPADDRESS     : ",
            "NO Gateway IP Address defined!" + _HINT_GATEWAY,
        )
        lines += _sourced(
            config, "SUBNET_ADDRESS", "GLOBAL_SUBNET_ADDRESS",
            "Subnet Address used from SUBNET_ADDRESS            : ",
            "Subnet Address used from GLOBAL_SUBNET_ADDRESS     : ",
            "NO Subnet Address defined!" + _HINT_GATEWAY,
        )
        lines += _sourced(
            config, "DNS2_IPADDRESS", "GLOBAL_DNS2_IPADDRESS",
            "DNS2 IP Address used from DNS2_IPADDRESS            : ",
            "DNS2 IP Address used from GLOBAL_DNS2_IPADDRESS     : ",
        )
    lines += _sourced(
        config, "DNS1_IPADDRESS", "GLOBAL_DNS1_IPADDRESS",
        "DNS1 IP Address used from DNS1_IPADDRESS            : ",
        "DNS1 IP Address used from GLOBAL_DNS1_IPADDRESS     : ",
        "NO DNS1 IP Address defined!" + _HINT_GATEWAY,
    )

    lines += _small_section_header("MQTT BROKER CONFIG:")
    lines += _sourced(
        config, "MQTT_ADDR", "GLOBAL_MQTT_ADDR",
        "MQTT address used from MQTT_ADDR         : ",
        "MQTT address used from GLOBAL_MQTT_ADDR  : ",
        "NO MQTT address defined!" + _HINT_ANY,
    )
    lines += _sourced(
        config, "MQTT_PORT", "GLOBAL_MQTT_PORT",
        "MQTT port used from MQTT_PORT            : ",
        "MQTT port used from GLOBAL_MQTT_ADDR     : ",
        "Using default MQTT port                  : " + str(DEFAULT_MQTT_PORT),
    )

    if any(config.has(name) for name in ("FDRS_MQTT_AUTH", "MQTT_AUTH", "GLOBAL_MQTT_AUTH")):
        lines += _small_section_header("MQTT AUTHENTIFICATION CONFIG:")
        lines += _sourced(
            config, "MQTT_USER", "GLOBAL_MQTT_USER",
            "MQTT username used from MQTT_USER        : ",
            "MQTT username used from GLOBAL_MQTT_USER : ",
            "NO MQTT username defined!" + _HINT_ANY,
        )
        lines += _sourced(
            config, "MQTT_PASS", "GLOBAL_MQTT_PASS",
            "MQTT password used from MQTT_PASS        : ",
            "MQTT password used from GLOBAL_MQTT_PASS : ",
            "NO MQTT password defined!" + _HINT_ANY,
            show=obfuscate_password,
        )

    for topic, padding in (("TOPIC_DATA", "                  "),
                           ("TOPIC_STATUS", "                "),
                           ("TOPIC_COMMAND", "               ")):
        lines += _sourced(
            config, topic, "GLOBAL_" + topic,
            f"MQTT topic ({topic}){padding}: ",
            f"MQTT topic used from GLOBAL_{topic} : ",
            f"NO MQTT topic defined! Please define {topic} in fdrs_globals.h (recommended) "
            "or in fdrs_node_config.h / fdrs_gateway_config.h",
        )

    lines += [SEPARATOR_LINE, SEPARATOR_LINE]
    return lines


def lora_details(config: Config) -> list[str]:
    """LoRa radio settings, acknowledgement settings and neighbours."""
    if not config.has("USE_LORA"):
        return []
    lines = _small_section_header("LoRa Details:")
    lines += _sourced(
        config, "FDRS_LORA_FREQUENCY", "GLOBAL_FDRS_LORA_FREQUENCY",
        "LoRa frequency used from FDRS_LORA_FREQUENCY                 : ",
        "LoRa frequency used from GLOBAL_FDRS_LORA_FREQUENCY          : ",
        "NO FDRS_LORA_FREQUENCY defined!" + _HINT_NODE,
    )
    lines += _sourced(
        config, "LORA_SF", "GLOBAL_LORA_SF",
        "LoRa SF used from LORA_SF                     : ",
        "LoRa SF used from GLOBAL_LORA_SF              : ",
        "NO LORA_SF defined!" + _HINT_NODE,
    )
    lines += _sourced(
        config, "LORA_TXPWR", "GLOBAL_LORA_TXPWR",
        "LoRa TXPWR used from LORA_TXPWR               : ",
        "LoRa TXPWR used from GLOBAL_LORA_TXPWR        : ",
        "NO LORA_TXPWR defined!" + _HINT_NODE,
    )

    if config.has("LORA_ACK"):
        lines.append("LoRa acknowledgement used from LORA_ACK       : enabled")
    elif config.has("GLOBAL_LORA_ACK"):
        lines.append("LoRa acknowledgement used from GLOBAL_LORA_ACK: enabled")
    else:
        lines.append("LoRa acknowledgement                          : disabled")

    if config.has("LORA_ACK") or config.has("GLOBAL_LORA_ACK"):
        if config.has("LORA_ACK_TIMEOUT"):
            lines.append(
                "Timeout for Lora acknowledment (LORA_ACK)     : "
                + (config.get("LORA_ACK_TIMEOUT") or "")
            )
        else:
            lines.append("NO LORA_ACK_TIMEOUT defined!" + _HINT_NODE)
        if config.has("LORA_RETRIES"):
            retries = config.get_int("LORA_RETRIES")
            lines.append("Number of ack retries (LORA_RETRIES)          : " + str(retries))
            if 0 <= retries <= 3:
                lines.append("Number of ack retries (LORA_RETRIES)          : within allowed range.")
            else:
                lines.append(
                    "Number of ack retries (LORA_RETRIES)          : not within allowed "
                    "range [0 - 3]! Please change to correct value."
                )
        else:
            lines.append("NO LORA_RETRIES defined! Defaulting to 0." + _HINT_NODE)

    if config.has("UNIT_MAC"):
        lines.append("LoRa Neighbors")
        lines.append("Neighbor 1 address: " + _hex(config, "LORA_NEIGHBOR_1"))
        lines.append("Neighbor 2 address: " + _hex(config, "LORA_NEIGHBOR_2"))
    return lines


def check_config(config: Config) -> list[str]:
    """The full configuration overview, one string per printed line."""
    lines = _config_header("NODE CONFIGURATION OVERVIEW")
    if config.has("UNIT_MAC"):
        lines.append("Device Type       : Gateway")
        lines.append("Gateway ID      : " + _hex(config, "UNIT_MAC"))
    elif config.has("READING_ID"):
        lines.append("Device Type       : Node")
        lines.append("Reading ID      : " + (config.get("READING_ID") or ""))
        lines.append("Node's Gateway: " + _hex(config, "GTWY_MAC"))
    else:
        lines += [
            "Device Type       : UNKNOWN!",
            "Please check config!",
            "If you have just created a new node type,",
            "please add it's config check to:",
            "fdrs_checkConfig.h",
        ]
    lines += activated_protocols(config)
    lines += _small_section_header("PROTOCOL DETAILS")
    lines += lora_details(config)
    lines += espnow_details(config)
    lines += wifi_details(config)
    lines += logging_information(config)
    lines += _config_header("NODE CONFIGURATION OVERVIEW END")
    lines.append("")
    return lines


def main(argv: Optional[list[str]] = None) -> int:
    """Print the configuration overview of a configuration header."""
    parser = argparse.ArgumentParser(
        prog="farmrelay-checkconfig",
        description="Print an overview of a node or gateway configuration header.",
    )
    parser.add_argument("config", help="path of the configuration header")
    args = parser.parse_args(argv)
    try:
        config = load_config(args.config)
        lines = check_config(config)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for line in lines:
        print("    " + line)
    return 0