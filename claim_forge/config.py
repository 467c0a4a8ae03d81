"""Shared configuration for the claim-forge NCCI rules engine.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Rule snapshot storage
DB_PATH = os.getenv("NCCI_DB_PATH", "./data/ncci_rules.db")
DOWNLOAD_DIR = os.getenv("NCCI_DOWNLOAD_DIR", "./data/cms_ncci_downloads")

# CMS landing pages (stable entry points for the quarterly edit files)
CMS_PAGES = {
    "ptp": os.getenv(
        "NCCI_PTP_PAGE",
        "https://www.cms.gov/medicare/coding-billing/national-correct-coding-initiative-ncci-edits/medicare-ncci-procedure-procedure-ptp-edits",
    ),
    "mue": os.getenv(
        "NCCI_MUE_PAGE",
        "https://www.cms.gov/medicare/coding-billing/national-correct-coding-initiative-ncci-edits/medicare-ncci-medically-unlikely-edits",
    ),
    "aoc": os.getenv(
        "NCCI_AOC_PAGE",
        "https://www.cms.gov/medicare/coding-billing/national-correct-coding-initiative-ncci-edits/medicare-ncci-add-code-edits",
    ),
}

# HTTP client
HTTP_TIMEOUT = float(os.getenv("NCCI_HTTP_TIMEOUT", "60"))
HTTP_MAX_RETRIES = int(os.getenv("NCCI_HTTP_MAX_RETRIES", "3"))
HTTP_RETRY_DELAY = float(os.getenv("NCCI_HTTP_RETRY_DELAY", "1.0"))
VERIFY_SSL = os.getenv("NCCI_VERIFY_SSL", "true").lower() not in ("0", "false", "no")
USER_AGENT = os.getenv("NCCI_USER_AGENT", "Mozilla/5.0 (claim-forge NCCI rules engine)")

# Validation
DEFAULT_PROVIDER_TYPE = os.getenv("NCCI_DEFAULT_PROVIDER_TYPE", "practitioner")
LOG_LEVEL = os.getenv("NCCI_LOG_LEVEL", "INFO")

# NCCI-associated modifiers that bypass a PTP edit with indicator 1
BYPASS_MODIFIERS = ("59", "XE", "XP", "XS", "XU")

# Facility place-of-service codes (hospital inpatient/outpatient, ER, SNF, etc.)
FACILITY_POS_CODES = frozenset(
    {
        "21",
        "22",
        "23",
        "24",
        "31",
        "32",
        "33",
        "34",
        "51",
        "52",
        "53",
        "54",
        "55",
        "56",
        "61",
    }
)
