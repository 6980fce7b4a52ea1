import pytest
from django.contrib.auth.models import AnonymousUser

from accounts.models import User
from api.v1.permissions import HasPermissionKey, IsActiveEmployee, IsAdmin, IsManagerOrAdmin


class DummyRequest:
    def __init__(self, user):
        self.user = user


class DummyView:
    required_permission = None


@pytest.mark.django_db
class TestIsActiveEmployee:
    def test_active_employee(self, rep_user):
        assert IsActiveEmployee().has_permission(DummyRequest(rep_user), DummyView()) is True

    def test_pending_account(self, pending_user):
        permission = IsActiveEmployee()
        assert permission.has_permission(DummyRequest(pending_user), DummyView()) is False
        assert permission.message == "Your account is awaiting approval."

    @pytest.mark.parametrize("status", [User.EmploymentStatus.REJECTED, User.EmploymentStatus.INACTIVE])
    def test_offboarded_accounts(self, rep_user, status):
        rep_user.employment_status = status
        assert IsActiveEmployee().has_permission(DummyRequest(rep_user), DummyView()) is False

    def test_superuser_skips_employment_status(self, db):
        root = User.objects.create_superuser(
            email="root@test.com", password="x", first_name="Root", last_name="User",
            employment_status=User.EmploymentStatus.PENDING,
        )
        assert IsActiveEmployee().has_permission(DummyRequest(root), DummyView()) is True

    def test_anonymous(self):
        assert IsActiveEmployee().has_permission(DummyRequest(AnonymousUser()), DummyView()) is False


@pytest.mark.django_db
class TestHasPermissionKey:
    def test_instance_key(self, rep_user, manager_user):
        permission = HasPermissionKey("viewTeamStats")
        assert permission.has_permission(DummyRequest(manager_user), DummyView()) is True
        assert permission.has_permission(DummyRequest(rep_user), DummyView()) is False
        assert permission.message == "Missing permission: viewTeamStats"

    def test_for_key_builds_a_class(self, admin_user, manager_user):
        permission_class = HasPermissionKey.for_key("approveCommission")
        assert issubclass(permission_class, HasPermissionKey)
        assert permission_class().has_permission(DummyRequest(admin_user), DummyView()) is True
        assert permission_class().has_permission(DummyRequest(manager_user), DummyView()) is False

    def test_key_from_view(self, rep_user):
        view = DummyView()
        view.required_permission = "submitCommission"
        assert HasPermissionKey().has_permission(DummyRequest(rep_user), view) is True
        view.required_permission = "viewAllUsers"
        assert HasPermissionKey().has_permission(DummyRequest(rep_user), view) is False

    def test_no_key_means_any_employee(self, rep_user, pending_user):
        assert HasPermissionKey().has_permission(DummyRequest(rep_user), DummyView()) is True
        assert HasPermissionKey().has_permission(DummyRequest(pending_user), DummyView()) is False


@pytest.mark.django_db
class TestRolePermissions:
    def test_is_admin(self, admin_user, manager_user):
        assert IsAdmin().has_permission(DummyRequest(admin_user), DummyView()) is True
        assert IsAdmin().has_permission(DummyRequest(manager_user), DummyView()) is False

    def test_is_manager_or_admin(self, admin_user, manager_user, rep_user):
        permission = IsManagerOrAdmin()
        assert permission.has_permission(DummyRequest(admin_user), DummyView()) is True
        assert permission.has_permission(DummyRequest(manager_user), DummyView()) is True
        assert permission.has_permission(DummyRequest(rep_user), DummyView()) is False

    def test_inactive_admin_is_refused(self, admin_user):
        admin_user.is_active = False
        assert IsAdmin().has_permission(DummyRequest(admin_user), DummyView()) is False
