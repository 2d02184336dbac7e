"""Raw TLS properties applied to an ``ssl.SSLContext``.

Supported keys (values are strings):
    ciphers          OpenSSL cipher list
    check_hostname   true/false
    verify_mode      CERT_NONE, CERT_OPTIONAL or CERT_REQUIRED
    minimum_version  ssl.TLSVersion name, e.g. TLSv1_2
    maximum_version  ssl.TLSVersion name
    alpn_protocols   comma separated protocol names
"""

import ssl
from collections.abc import Mapping

from mqtt_conduit.logging import get_logger

logger = get_logger(__name__)

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Invalid boolean for TLS property {key}: {value!r}")


def _parse_tls_version(key: str, value: str) -> ssl.TLSVersion:
    try:
        return ssl.TLSVersion[value.strip()]
    except KeyError:
        raise ValueError(f"Unknown TLS version for {key}: {value!r}") from None


def _parse_verify_mode(value: str) -> ssl.VerifyMode:
    try:
        return ssl.VerifyMode[value.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown verify_mode: {value!r}") from None


def apply_ssl_properties(context: ssl.SSLContext, properties: Mapping[str, str]) -> None:
    """Apply raw TLS properties to ``context`` in place.

    Unknown keys are logged and skipped.

    Raises:
        ValueError: If a known property has an invalid value
    """
    # check_hostname must be relaxed before verify_mode can drop to CERT_NONE
    if "check_hostname" in properties:
        context.check_hostname = _parse_bool("check_hostname", properties["check_hostname"])
    if "verify_mode" in properties:
        context.verify_mode = _parse_verify_mode(properties["verify_mode"])
    if "minimum_version" in properties:
        context.minimum_version = _parse_tls_version("minimum_version", properties["minimum_version"])
    if "maximum_version" in properties:
        context.maximum_version = _parse_tls_version("maximum_version", properties["maximum_version"])
    if "ciphers" in properties:
        try:
            context.set_ciphers(properties["ciphers"])
        except ssl.SSLError as e:
            raise ValueError(f"Invalid cipher list: {properties['ciphers']!r}") from e
    if "alpn_protocols" in properties:
        protocols = [p.strip() for p in properties["alpn_protocols"].split(",") if p.strip()]
        context.set_alpn_protocols(protocols)

    known = {
        "check_hostname",
        "verify_mode",
        "minimum_version",
        "maximum_version",
        "ciphers",
        "alpn_protocols",
    }
    for key in properties:
        if key not in known:
            logger.warning(f"Ignoring unsupported TLS property: {key}")
