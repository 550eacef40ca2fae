# file: app/filters.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

# Placeholder values the filter bar uses for "no filter"
_ANY = {"", "All", "All Sources", "OPD Status", "IPD Status", "Diagnostics"}

# operator key -> (query param it qualifies, *Op param sent to the server)
_OPERATORS = {
    "status": ("status", "statusOp"),
    "source": ("source", "sourceOp"),
    "caller": ("assignedTo", "assignedToOp"),
    "campaign": ("campaignId", "campaignOp"),
    "followup": ("followup", "followupOp"),
    "opd": ("opdStatus", "opdStatusOp"),
    "ipd": ("ipdStatus", "ipdStatusOp"),
    "diag": ("diagnostics", "diagnosticsOp"),
}

class CustomFieldFilter(BaseModel):
    value: Optional[str] = None
    operator: str = "is"

class LeadFilters(BaseModel):
    date_mode: Optional[str] = None
    custom_from: Optional[str] = None
    custom_to: Optional[str] = None
    source: Optional[str] = None
    callers: List[str] = []
    statuses: List[str] = []
    followup: Optional[str] = None
    campaigns: List[str] = []
    search: Optional[str] = None
    opd_status: Optional[str] = None
    ipd_status: Optional[str] = None
    diagnostics: Optional[str] = None
    operators: Dict[str, str] = {}
    custom_fields: Dict[str, CustomFieldFilter] = {}

def _set(params: Dict[str, Any], key: str, value: Optional[str]):
    if value and value not in _ANY:
        params[key] = value

def build_query_params(filters: Optional[LeadFilters], page: Optional[int] = None,
                       page_size: Optional[int] = None) -> Dict[str, Any]:
    """Translate the filter bar into the list endpoint's query params.

    Pass page=None to get filter params only (bulk-update-by-filter).
    """
    f = filters or LeadFilters()
    params: Dict[str, Any] = {}
    if page is not None:
        params["page"] = page
    if page_size is not None:
        params["limit"] = page_size

    if f.date_mode:
        params["dateMode"] = f.date_mode
        if f.date_mode == "Custom":
            _set(params, "from", f.custom_from)
            _set(params, "to", f.custom_to)
    _set(params, "source", f.source)
    if f.callers:
        params["assignedTo"] = ",".join(f.callers)
    if f.statuses:
        params["status"] = ",".join(f.statuses)
    _set(params, "followup", f.followup)
    if f.campaigns:
        params["campaignId"] = ",".join(f.campaigns)
    if f.search and f.search.strip():
        params["q"] = f.search.strip()
    _set(params, "opdStatus", f.opd_status)
    _set(params, "ipdStatus", f.ipd_status)
    _set(params, "diagnostics", f.diagnostics)

    for key, (param, op_param) in _OPERATORS.items():
        if f.operators.get(key) == "is_not" and param in params:
            params[op_param] = "is_not"

    for name, cf in f.custom_fields.items():
        if cf.value:
            params[f"field__{name}"] = cf.value
            if cf.operator and cf.operator != "is":
                params[f"fieldOp__{name}"] = cf.operator
    return params
