"""Client IP and device detection for page-view tracking."""
import logging
from dataclasses import dataclass

from starlette.requests import Request
from user_agents import parse as parse_user_agent

from blogcms.models import DEVICE_FIELD_LENGTH, IP_ADDRESS_LENGTH

logger = logging.getLogger(__name__)

# Checked in order; the first present header wins.
_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


@dataclass(frozen=True)
class DeviceInfo:
    type: str = "unknown"
    os: str | None = None
    browser: str | None = None


def get_client_ip(request: Request) -> str:
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # X-Forwarded-For may list a chain of proxies; the client is first.
            return value.split(",")[0].strip()[:IP_ADDRESS_LENGTH]
    if request.client and request.client.host:
        return request.client.host[:IP_ADDRESS_LENGTH]
    return "unknown"


def _describe(family: str, version: str) -> str | None:
    if not family or family == "Other":
        return None
    return f"{family} {version or ''}".strip()[:DEVICE_FIELD_LENGTH]


def parse_device_info(user_agent: str) -> DeviceInfo:
    """
    Classify *user_agent* as mobile, tablet, desktop or unknown.

    Anything without a recognisable device or operating system is
    ``unknown``; parser errors are logged and degrade the same way.
    """
    if not user_agent:
        return DeviceInfo()
    try:
        ua = parse_user_agent(user_agent)
        os_name = _describe(ua.os.family, ua.os.version_string)
        browser = _describe(ua.browser.family, ua.browser.version_string)
        if ua.is_tablet:
            device_type = "tablet"
        elif ua.is_mobile:
            device_type = "mobile"
        elif os_name:
            device_type = "desktop"
        else:
            device_type = "unknown"
        return DeviceInfo(type=device_type, os=os_name, browser=browser)
    except Exception:
        logger.exception("Error parsing user agent %r", user_agent)
        return DeviceInfo()


def get_device_and_ip(request: Request) -> tuple[str, str, DeviceInfo]:
    """Return ``(ip_address, user_agent, device)`` for *request*."""
    user_agent = request.headers.get("user-agent", "")
    return get_client_ip(request), user_agent, parse_device_info(user_agent)
