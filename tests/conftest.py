import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.config import ApproverConfig
from app.database import Database
from app.guardrails.permissions import PermissionChecker
from app.models.requisition import LineItem, RequisitionDraft
from app.models.user import User
from app.workflow.chain import initialize_chain
from app.workflow.service import RequisitionWorkflow
from tests.fakes import FakeDatabase

ROLES = ["Estate Officer", "Registrar", "Finance", "Principal"]


@pytest.fixture
def approvers():
    return [ApproverConfig(role=role, notify_address=f"{role.lower().replace(' ', '.')}@institution.edu")
            for role in ROLES]


@pytest.fixture
def chain(approvers):
    return initialize_chain(approvers)


@pytest.fixture
def users():
    """One user per approver role plus a requester and an admin."""
    people = {role: User(username=role.lower().replace(" ", "_"), full_name=role, role=role) for role in ROLES}
    people["requester"] = User(username="jdoe", full_name="Jane Doe", role="requester", department_id="dept-ict")
    people["admin"] = User(username="admin", full_name="Admin", role="admin")
    return people


@pytest.fixture
def sample_draft():
    return RequisitionDraft(
        department_id="dept-ict",
        department_name="ICT",
        department_head_name="Dr. Head",
        dean_name="Prof. Dean",
        applicant_name="Jane Doe",
        purpose="Lab refurbishment",
        line_items=[
            LineItem(category_id="cat-stationery", category_name="Stationery",
                     item_id="STA-001", item_name="A4 Paper (ream)", quantity=10),
            LineItem(category_id="cat-ict", category_name="ICT Consumables",
                     item_id="ICT-001", item_name="Toner Cartridge", quantity=2),
        ],
    )


@pytest.fixture
def fake_db():
    """A Database whose repositories sit on in-memory fake collections."""
    database = Database()
    database.bind(FakeDatabase())
    database.inventory.deduct_stock = AsyncMock(return_value=None)
    with patch("app.workflow.service.db", database), patch("app.guardrails.audit_logger.db", database):
        yield database


@pytest.fixture
def mock_notifier():
    notifier = MagicMock()
    notifier.notify = MagicMock()
    return notifier


@pytest.fixture
def workflow(approvers, mock_notifier):
    return RequisitionWorkflow(
        approvers=approvers,
        notifier=mock_notifier,
        checker=PermissionChecker(approver_roles=ROLES),
        conflict_retries=1,
    )
