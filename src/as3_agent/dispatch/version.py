"""AS3 extension version compatibility check."""
import logging
import math

from .errors import IncompatibleVersionError, VersionParseError
from .schema import VersionInfo

logger = logging.getLogger(__name__)

AS3_SUPPORTED_VERSION = 3.20

SCHEMA_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/F5Networks/f5-appsvcs-extension/"
    "master/schema/{version}/as3-schema-{release}.json"
)


def parse_version(version: str) -> float:
    """Parse "3.20.0" (or "3.20.0-1") into 3.20.

    Any build suffix after "-" is dropped, then everything before the last
    dot is read as a float.
    """
    numeric = version.strip().split("-", 1)[0]
    if "." not in numeric:
        raise VersionParseError(f"Unrecognized AS3 version string: {version!r}")
    try:
        value = float(numeric[:numeric.rindex(".")])
    except ValueError:
        raise VersionParseError(f"Error while converting AS3 version {version!r} to float")
    if not math.isfinite(value):
        raise VersionParseError(f"AS3 version {version!r} is not a number")
    return value


def check_version(
    version: str,
    build: str = "",
    minimum: float = AS3_SUPPORTED_VERSION,
) -> VersionInfo:
    """Verify the AS3 extension on the control plane is recent enough.

    Args:
        version: Version string reported by the control plane
        build: Build/release identifier reported alongside it
        minimum: Lowest supported major.minor version

    Returns:
        VersionInfo with the resolved version, build and release

    Raises:
        VersionParseError: If the version string cannot be parsed
        IncompatibleVersionError: If the version is below ``minimum``
    """
    if not build and "-" in version:
        version, build = version.split("-", 1)

    numeric = parse_version(version)
    if numeric < minimum:
        raise IncompatibleVersionError(numeric, minimum)

    logger.debug(f"BIG-IP is serving AS3 version: {version}")
    return VersionInfo(version=version, build=build, numeric=numeric)


def schema_url_for(version: str, release: str) -> str:
    """Public AS3 schema URL for an extension release.

    Schemas are published per release, e.g. version "3.20.0" with release
    "3.20.0-3" lives at .../schema/3.20.0/as3-schema-3.20.0-3.json.
    """
    return SCHEMA_URL_TEMPLATE.format(version=version, release=release)
