# file: scripts/seed_investors.py
#!/usr/bin/env python3
"""Seed the database with the starter investor list and response templates"""

import sys
import json
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from supabase import create_client
from app.config import get_settings
from app.schema import Investor, ResponseTemplate

DATA_DIR = Path(__file__).parent.parent / "data"

def load(name):
    path = DATA_DIR / name
    if not path.exists():
        print(f"Error: {path} not found")
        return None
    with open(path) as f:
        return json.load(f)

def seed_database():
    """Upsert investors, their criteria and the shared templates"""

    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        print("Error: SUPABASE_URL and SUPABASE_KEY must be set")
        return

    investors = load("investors.json")
    templates = load("templates.json")
    if investors is None or templates is None:
        return

    print("Connecting to database...")
    client = create_client(settings.supabase_url, settings.supabase_key)

    print(f"Loading {len(investors)} investors...")
    criteria_rows = []
    for raw in investors:
        # Validate before writing so a typo in the seed file fails loudly
        investor = Investor.model_validate(raw)
        row = {k: v for k, v in raw.items() if k != "investment_criteria"}
        client.table("investors").upsert(row, on_conflict="investor_id").execute()
        for criterion in investor.criteria:
            criteria_rows.append({"investor_id": investor.id, **criterion.model_dump()})

    print(f"Replacing {len(criteria_rows)} investment criteria...")
    ids = [raw["investor_id"] for raw in investors]
    client.table("investment_criteria").delete().in_("investor_id", ids).execute()
    if criteria_rows:
        client.table("investment_criteria").insert(criteria_rows).execute()

    print(f"Loading {len(templates)} templates...")
    for raw in templates:
        ResponseTemplate.model_validate(raw)
        client.table("response_templates").upsert(raw, on_conflict="template_id").execute()

    # Read back what the API will see
    print("\nVerifying...")
    rows = client.table("investors").select("*,investment_criteria(*)").order("name").execute().data
    for row in rows:
        investor = Investor.model_validate(row)
        labels = ", ".join(c.industry for c in investor.criteria) or "no criteria"
        print(f"  - {investor.name} ({investor.firm}): {labels}")

    print(f"\nDatabase seeded with {len(rows)} investors and {len(templates)} templates")

if __name__ == "__main__":
    seed_database()
