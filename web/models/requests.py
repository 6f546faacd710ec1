"""
Request schemas (Pydantic)

Web API input validation. Amount and title rules live in the core so the
same ValidationError (400) comes back whichever surface calls it.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class LedgerEntryCreateRequest(BaseModel):
    """Manual ledger entry"""

    amount: Decimal = Field(..., description="Amount (positive)")
    kind: str = Field(..., description="INCOME or EXPENSE")
    description: str = Field(default="", description="What the money was for")
    entry_date: date | None = Field(default=None, description="Date (default today)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "amount": "15000",
                    "kind": "INCOME",
                    "description": "Monthly membership fees",
                    "entry_date": "2026-10-01",
                },
            ]
        }
    }


class ProjectRequestCreateRequest(BaseModel):
    """New funding request"""

    title: str = Field(..., description="Project title")
    estimated_cost: Decimal = Field(..., description="Requested amount (positive)")
    description: str = Field(default="", description="Project details")
    request_date: date | None = Field(default=None, description="Planned date (default today)")
    submit: bool = Field(
        default=True,
        description="True: send for approval now (PENDING), False: keep as DRAFT",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Beach clean-up",
                    "estimated_cost": "250",
                    "description": "Gloves, bags and transport",
                    "submit": True,
                },
            ]
        }
    }
