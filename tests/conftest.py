import os
import sys
import pytest

# Ensure the repository root is on sys.path so imports like `import app` and `import agents` work
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from app.schema import Company, Criterion, Investor

@pytest.fixture
def sarah():
    return Investor(
        id="inv_1",
        name="Sarah Chen",
        firm="Accel",
        investment_thesis="B2B SaaS, fintech, and developer tools",
        stage_focus="Series A",
        check_size="$2M - $10M",
        criteria=[
            Criterion(industry="SaaS", stage="Series A", location="San Francisco"),
            Criterion(industry="Fintech", stage="Series A", location="San Francisco"),
        ],
    )

@pytest.fixture
def investors(sarah):
    return [
        sarah,
        Investor(
            id="inv_2",
            name="Michael Rodriguez",
            firm="Sequoia Capital",
            investment_thesis="Early-stage consumer and enterprise technology companies",
            stage_focus="Seed",
            criteria=[Criterion(industry="Consumer Tech", location="Palo Alto")],
        ),
        Investor(
            id="inv_3",
            name="Lisa Wang",
            firm="General Catalyst",
            investment_thesis="Healthcare technology and B2B marketplaces",
            stage_focus="Seed",
            criteria=[Criterion(industry="Healthcare", location="Boston")],
        ),
    ]

@pytest.fixture
def acme():
    return Company(
        id="co_1",
        user_id="user_1",
        name="Acme",
        description="a platform that automates invoice reconciliation for mid-market finance teams",
        industry="Fintech",
        stage="Seed",
    )
