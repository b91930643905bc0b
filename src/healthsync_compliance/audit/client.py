"""Client attributes recorded with each audit entry."""
from datetime import datetime
import hashlib
import ipaddress
import re
import uuid

from healthsync_compliance.audit.models import DeviceInfo

MOBILE_PATTERN = re.compile(r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)

# Order matters: Edge and Opera user agents also contain "Chrome",
# Chrome's contains "Safari"
BROWSER_MARKERS = [
    ("Edg", "Edge"),
    ("OPR", "Opera"),
    ("Chrome", "Chrome"),
    ("Firefox", "Firefox"),
    ("Safari", "Safari"),
    ("MSIE", "Internet Explorer"),
    ("Trident/", "Internet Explorer"),
]

# Android agents contain "Linux", iOS agents contain "Mac OS X"
OS_MARKERS = [
    ("Windows", "Windows"),
    ("Android", "Android"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("iOS", "iOS"),
    ("Mac", "MacOS"),
    ("Linux", "Linux"),
]


def client_fingerprint(user_agent: str | None) -> str:
    """Short, stable hash of the client signature."""
    return hashlib.sha256((user_agent or "").encode()).hexdigest()[:12]


def generate_session_id(timestamp: datetime, user_agent: str | None = None) -> str:
    """session-<epoch ms>-<random>-<client fingerprint>"""
    millis = int(timestamp.timestamp() * 1000)
    return f"session-{millis}-{uuid.uuid4().hex[:9]}-{client_fingerprint(user_agent)}"


def validate_ip_address(ip: str | None) -> bool:
    """Syntactic IPv4/IPv6 check. Says nothing about trust."""
    if not ip or ip == "unknown":
        return False
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return False
    return True


def get_device_info(user_agent: str | None) -> DeviceInfo:
    """Classify browser, OS and mobile from a user agent string."""
    if not user_agent:
        return DeviceInfo()
    
    browser = next((name for marker, name in BROWSER_MARKERS if marker in user_agent), "unknown")
    os_name = next((name for marker, name in OS_MARKERS if marker in user_agent), "unknown")
    
    return DeviceInfo(
        browser=browser,
        os=os_name,
        mobile=bool(MOBILE_PATTERN.search(user_agent)),
    )
