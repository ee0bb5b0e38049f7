"""
PVGIS query service configuration and constants.
"""

import os
from enum import Enum

from dotenv import load_dotenv

load_dotenv()


class Technology(str, Enum):
    CRYSTALLINE_SILICON = "crystSi"
    CIS = "CIS"
    CDTE = "CdTe"


class Mounting(str, Enum):
    FREE = "free"            # Free-standing
    BUILDING = "building"    # Building integrated


class Dialect(str, Enum):
    TAB_DELIMITED = "tab"    # PVGIS v5 PVcalc.php plain text
    HTML = "html"            # PVGIS classic apps4 window output


# Candidate radiation databases, in order of scientific preference.
# The coverage endpoint answers with one flag per entry, in this same order.
CANDIDATE_DATABASES: tuple[str, ...] = (
    "PVGIS-CMSAF",
    "PVGIS-SARAH",
    "PVGIS-NSRDB",
    "PVGIS-ERA5",
    "PVGIS-COSMO",
)

# Upstream endpoints
PVGIS_EXTENT_URL = "https://re.jrc.ec.europa.eu/pvgis5/extent.php"
PVGIS_V5_CALC_URL = "https://re.jrc.ec.europa.eu/pvgis5/PVcalc.php"
PVGIS_CLASSIC_CALC_URL = "http://re.jrc.ec.europa.eu/pvgis/apps4/PVcalc.php"

# Fixed fields PVcalc.php (v5) expects on every query
PVGIS_V5_TEMPLATE = {
    "browser": "1",
    "userhorizon": "",
    "usehorizon": "1",
}

# Fixed form fields the classic apps4 calculator expects on every POST
PVGIS_CLASSIC_TEMPLATE = {
    "MAX_FILE_SIZE": "10000",
    "horizonfile": "",
    "outputchoicebuttons": "window",
    "sbutton": "Calculate",
    "outputformatchoice": "window",
    "optimalchoice": "",
    "regionname": "europe",
    "language": "en_en",
}

NO_DATA_MARKER = "There were no valid daily radiation data for the chosen location"

# Month labels used by the HTML dialect (index 0 = January)
MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# Defaults applied by the API layer when a parameter is omitted
DEFAULT_PEAK_POWER_KW = 1.0
DEFAULT_SYSTEM_LOSS_PERCENT = 14.0
DEFAULT_TILT_ANGLE_DEG = 35.0
DEFAULT_AZIMUTH_DEG = 0.0

# Human-readable descriptions of the output fields
FIELD_INFO = {
    "Ed": "Average daily energy production from the given system (kWh)",
    "Em": "Average monthly energy production from the given system (kWh)",
    "Hd": (
        "Average daily sum of global irradiation per square meter received "
        "by the modules of the given system (kWh/m2)"
    ),
    "Hm": (
        "Average monthly sum of global irradiation per square meter received "
        "by the modules of the given system (kWh/m2)"
    ),
    "SDm": (
        "Standard deviation of the monthly energy production due to "
        "year-to-year variation (kWh)"
    ),
}

INPUT_LABELS = {
    "database": "PVGIS database",
    "lat": "Latitude",
    "lng": "Longitude",
    "peakpower": "Nominal power of the PV system",
    "loss": "System losses (%)",
    "angle": "Fixed slope of modules (deg.)",
    "aspect": "Orientation (azimuth) of modules",
    "mounting": "Mounting position",
    "pvtech": "PV technology",
}

# Runtime settings (environment overridable)
PVGIS_ENDPOINT = os.getenv("PVGIS_ENDPOINT", "v5")
PVGIS_REQUEST_TIMEOUT = float(os.getenv("PVGIS_REQUEST_TIMEOUT", 30))
PVGIS_RESOLVE_DEADLINE = float(os.getenv("PVGIS_RESOLVE_DEADLINE", 120))
PVGIS_USER_AGENT = os.getenv("PVGIS_USER_AGENT", "QueryPvgis/1.0.0")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "PVGIS_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,"
        "http://127.0.0.1:5173,http://127.0.0.1:3000",
    ).split(",")
    if origin.strip()
]
