import datetime as dt
from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from accounts.models import User
from compliance.services import acknowledge_sop


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
        department=User.Department.ACCOUNTING,
        employment_status=User.EmploymentStatus.ACTIVE,
    )


@pytest.fixture
def manager_user(db):
    return User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Manager",
        last_name="User",
        role=User.Role.MANAGER,
        department=User.Department.SALES,
        employment_status=User.EmploymentStatus.ACTIVE,
    )


@pytest.fixture
def rep_user(db, manager_user):
    return User.objects.create_user(
        email="rep@test.com",
        password="testpass123",
        first_name="Rep",
        last_name="User",
        role=User.Role.USER,
        department=User.Department.SALES,
        employment_status=User.EmploymentStatus.ACTIVE,
        manager=manager_user,
    )


@pytest.fixture
def other_rep(db, admin_user):
    return User.objects.create_user(
        email="other.rep@test.com",
        password="testpass123",
        first_name="Other",
        last_name="Rep",
        role=User.Role.USER,
        department=User.Department.SALES,
        employment_status=User.EmploymentStatus.ACTIVE,
        manager=admin_user,
    )


@pytest.fixture
def pending_user(db):
    return User.objects.create_user(
        email="pending@test.com",
        password="testpass123",
        first_name="Pending",
        last_name="Signup",
        employment_status=User.EmploymentStatus.PENDING,
    )


@pytest.fixture
def sop_acknowledged(admin_user, manager_user, rep_user):
    """The admin, manager and rep have all acknowledged the current playbook."""
    for user in (admin_user, manager_user, rep_user):
        acknowledge_sop(user)


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def manager_client(manager_user):
    return _client_for(manager_user)


@pytest.fixture
def rep_client(rep_user):
    return _client_for(rep_user)


def submission_data(**overrides):
    data = {
        "job_number": "1234",
        "job_name": "Smith Residence",
        "job_address": "100 Main St, Phoenix AZ",
        "job_type": "insurance",
        "roof_type": "shingle",
        "contract_date": dt.date(2025, 1, 2),
        "contract_amount": Decimal("20000.00"),
        "supplements_approved": Decimal("5000.00"),
        "commission_percentage": Decimal("10.00"),
        "advances_paid": Decimal("500.00"),
    }
    data.update(overrides)
    return data


def document_data(**overrides):
    data = {
        "job_name_id": "Smith Residence #1234",
        "job_date": dt.date(2025, 1, 2),
        "sales_rep": "Rep User",
        "job_type": "retail",
        "roof_type": "shingle",
        "gross_contract_total": Decimal("10000.00"),
        "op_percent": Decimal("0.10"),
        "material_cost": Decimal("3000.00"),
        "labor_cost": Decimal("2000.00"),
        "neg_exp_1": Decimal("500.00"),
        "pos_exp_1": Decimal("200.00"),
        "rep_profit_percent": Decimal("0.40"),
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_submission():
    return submission_data


@pytest.fixture
def make_document():
    return document_data
