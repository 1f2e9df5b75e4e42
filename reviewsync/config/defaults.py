# reviewsync Default Configuration
# Full default configuration as Python dict and YAML generator

import copy
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "remote": {
        "base_url": "https://api.airtable.com/v0",
        "base_id": "appXXXXXXXXXXXXXX",
        "table_id": "tblXXXXXXXXXXXXXX",
        "view": None,
        "token_env": "REVIEWSYNC_API_TOKEN",
        "page_size": 100,
        "timeout": 30.0,
    },
    "scope": [
        {"field": "Type of Backcharge", "equals": "Builder Issued Backcharge"},
        {"field": "Approved or Dispute", "blank": True},
    ],
    "linked": [
        {
            "field": "Subcontractor to Backcharge",
            "table_id": "tblSUBCONTRACTORS",
            "name_fields": ["Subcontractor Company Name", "Name"],
        },
        {"field": "Customer", "table_id": "tblCUSTOMERS", "name_fields": ["Client Name", "Name"]},
        {"field": "Field Technician", "table_id": "tblTECHNICIANS", "name_fields": ["Full Name", "Name"]},
        {"field": "Vanir Branch", "table_id": "tblBRANCHES", "name_fields": ["Office Name", "Name"]},
        {
            "field": "Vendor Brick and Mortar Location",
            "table_id": "tblVENDORS",
            "name_fields": ["Vendor Name", "Vendor", "Company", "Name", "Display Name"],
        },
    ],
    "polling": {
        "interval_seconds": 900.0,
        "initial_delay_seconds": 1.5,
        "overlap_seconds": 30.0,
    },
    "view": {
        "title_field": "Job Name",
        "columns": ["ID Number", "Subcontractor to Backcharge", "Sub Backcharge Amount", "Vendor Amount to Backcharge"],
        "search_fields": [
            "Job Name",
            "ID Number",
            "Customer",
            "Subcontractor to Backcharge",
            "Field Technician",
            "Vanir Branch",
        ],
        "sort_by": None,
    },
    "output": {
        "verbose": False,
        "colored": True,
        "log_file": None,
    },
    "state_file": "~/.config/reviewsync/state.yaml",
}


def get_default_config() -> dict[str, Any]:
    """Get a deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def generate_default_config() -> str:
    """Generate default configuration as YAML string with comments."""
    header = """# reviewsync Configuration
# Version: 1.0
#
# Keeps a local working set of review items in sync with a remote table.
# The API token is read from the environment variable named in remote.token_env.
#
# Scope rules (all must hold for a record to be in the working set):
#   - field: <name>, equals: <value>    field equals the value
#   - field: <name>, one_of: [a, b]     field is one of the values
#   - field: <name>, blank: true|false  field is (or is not) blank
#
# Linked tables: record IDs in these fields are shown, searched and filtered
# by the display name read from the linked table (first non-blank name field).
#
# Polling:
#   interval_seconds: time between background polls
#   overlap_seconds:  how far the checkpoint is moved back after each poll

"""
    return header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False, allow_unicode=True)
