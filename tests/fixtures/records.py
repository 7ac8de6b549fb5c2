"""
Test fixtures and sample data

Records and upstream payloads shaped like the CRM, task system and
spreadsheet responses the clients parse.
"""

from typing import Any, Dict, List

from opsbot.models.data_models import Record


def company(ident: Any, name: str, domain: str = "") -> Record:
    """A CRM-like record with name and domain fields"""
    return Record(id=str(ident), fields={"name": name, "domain": domain})


def generate_companies(count: int, prefix: str = "Company") -> List[Record]:
    """Numbered companies, none of which match sample queries like 'acme'"""
    return [
        company(f"gen-{i}", f"{prefix} {i:04d}", f"{prefix.lower()}{i}.example")
        for i in range(count)
    ]


SAMPLE_COMPANIES = [
    company(1, "Acme Corp", "acme.com"),
    company(2, "Beta Acme Services", "beta.io"),
    company(3, "Unrelated", "nothing.org"),
    company(4, "Globex", "acmeglobal.com"),
    company(5, "Initech", "initech.com"),
]


HUBSPOT_COMPANIES_PAGE: Dict[str, Any] = {
    "results": [
        {"id": "101", "properties": {"name": "Acme Corp", "domain": "acme.com"}},
        {"id": "102", "properties": {"name": "Acme Labs", "domain": "acmelabs.io"}},
    ],
    "paging": {"next": {"after": "102"}},
}

HUBSPOT_LAST_PAGE: Dict[str, Any] = {
    "results": [
        {"id": "103", "properties": {"name": "Zeta", "domain": "zeta.dev"}},
    ],
}

DEAL_PROPERTIES: List[Dict[str, Any]] = [
    {"name": "amount", "label": "Amount", "fieldType": "number"},
    {"name": "pipeline_stage_x", "label": "Stage", "fieldType": "select", "options": [{"value": "a"}]},
    {"name": "dealtype", "label": "Deal Type", "fieldType": "select"},
    {"name": "lead_source_hear", "label": "How did you hear about us?", "fieldType": "select"},
]

DEAL_TYPE_OPTIONS: Dict[str, Any] = {
    "name": "dealtype",
    "options": [
        {"label": "Renewal", "value": "renewal", "displayOrder": 2},
        {"label": "New Business", "value": "newbusiness", "displayOrder": 1},
        {"label": "Client Loss", "value": "client_loss", "displayOrder": 3},
        {"label": "Legacy", "value": "legacy", "displayOrder": 0, "hidden": True},
    ],
}

DOUBLE_CLIENTS: List[Dict[str, Any]] = [
    {
        "id": 11,
        "name": "Acme Bookkeeping",
        "email": "",
        "primaryEmail": "books@acme.com",
        "contacts": [{"name": "Ann Smith", "email": "ann@acme.com"}],
    },
    {
        "id": 12,
        "name": "Northwind",
        "emails": ["ops@northwind.com"],
        "contacts": [{"name": "Peter Acmeson", "email": "peter@northwind.com"}],
    },
]

AIRTABLE_PAGE: Dict[str, Any] = {
    "records": [
        {"id": "recA", "fields": {"Client Name": "Acme Corp", "Owner": {"id": "usr1", "name": "Dana"}}},
        {"id": "recB", "fields": {"Client Name": "Acme Holdings", "Owner": [{"email": "lee@ops.com"}]}},
    ],
    "offset": "itr2/recB",
}
