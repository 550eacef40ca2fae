# file: clients/registry.py
import asyncio
import logging
import aiohttp
from typing import Any, Dict, List, Optional
from app.config import get_settings
from app.filters import LeadFilters, build_query_params
from app.schema import Agent, Lead, PageResult
from live.events import normalize_lead

log = logging.getLogger("api")

class ApiClient:
    """Base REST client for the lead backend"""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = None

    async def connect(self):
        """Initialize connection"""
        if not self.session:
            headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
            self.session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self):
        """Close connection"""
        if self.session:
            await self.session.close()
            self.session = None

    async def call(self, method: str, path: str, params: Dict[str, Any] = None,
                   json: Dict[str, Any] = None):
        """Send one request; non-2xx responses raise aiohttp.ClientResponseError"""
        if not self.session:
            await self.connect()

        query = {k: str(v) for k, v in (params or {}).items()}
        async with self.session.request(
            method, f"{self.base_url}{path}", params=query or None, json=json
        ) as response:
            response.raise_for_status()
            return await response.json()

def _page_from(data: Dict[str, Any], page: int, page_size: int) -> PageResult:
    rows = data.get("leads") or data.get("data") or []
    records = []
    for row in rows:
        fields = normalize_lead(row)
        if "id" not in fields:
            log.warning("skipping lead row without id: %s", sorted(row)[:5])
            continue
        records.append(Lead(**fields))
    return PageResult(
        records=records,
        page=int(data.get("page") or page),
        limit=int(data.get("limit") or page_size),
        total=int(data.get("total") if data.get("total") is not None else len(records)),
        total_pages=int(data.get("totalPages") or 1),
    )

class LeadApiClient(ApiClient):
    """Leads and callers endpoints"""

    async def fetch_page(self, filters: Optional[LeadFilters] = None, page: int = 1,
                         page_size: int = 20) -> PageResult:
        params = build_query_params(filters, page, page_size)
        data = await self.call("GET", "/leads", params=params)
        return _page_from(data or {}, page, page_size)

    async def fetch_all(self, filters: Optional[LeadFilters] = None,
                        page_size: int = 100) -> List[Lead]:
        """Every lead matching `filters`: page 1, then the rest concurrently."""
        first = await self.fetch_page(filters, 1, page_size)
        rows = list(first.records)
        if first.total_pages > 1:
            pages = await asyncio.gather(*[
                self.fetch_page(filters, p, page_size)
                for p in range(2, first.total_pages + 1)
            ])
            for pg in pages:
                rows.extend(pg.records)
        return rows

    async def fetch_filter_meta(self) -> Dict[str, Any]:
        # { sources, statuses, callerCounts }
        return await self.call("GET", "/leads/filter-meta")

    async def assign(self, lead_ids: List[str], agent_id: str):
        return await self.call("POST", "/leads/assign", json={
            "leadIds": list(lead_ids), "callerId": agent_id
        })

    async def bulk_update(self, lead_ids: List[str], updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self.call("POST", "/leads/bulk-update", json={
            "leadIds": list(lead_ids), "updates": updates
        })

    async def bulk_update_by_filter(self, filters: Optional[LeadFilters],
                                    updates: Dict[str, Any]) -> Dict[str, Any]:
        # Server only wants filter params, never pagination
        return await self.call("POST", "/leads/bulk-update-by-filter", json={
            "filters": build_query_params(filters), "updates": updates
        })

    async def list_agents(self) -> List[Agent]:
        results = await self.call("GET", "/users", params={"role": "caller"})
        agents = []
        for u in results or []:
            agents.append(Agent(
                id=str(u.get("id") or u.get("_id")),
                name=u.get("name") or "",
                email=u.get("email") or None,
                phone=u.get("phone") or None,
            ))
        return agents

class ClientRegistry:
    """Central registry for backend clients"""

    def __init__(self, base_url: str = None, token: str = None):
        s = get_settings()
        self.leads = LeadApiClient(
            base_url or s.api_base_url,
            token if token is not None else s.api_token,
            s.api_timeout,
        )

    async def connect(self):
        await self.leads.connect()

    async def close(self):
        await self.leads.close()

    async def health_check(self):
        """Probe the backend with a one-row list request"""
        status = {}
        try:
            await self.leads.fetch_page(page=1, page_size=1)
            status["leads"] = "healthy"
        except Exception as e:
            status["leads"] = f"unhealthy: {str(e)}"
        return status

    def get_lead_client(self) -> LeadApiClient:
        return self.leads
