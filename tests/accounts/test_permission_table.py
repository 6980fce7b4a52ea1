import pytest
from django.core.exceptions import ValidationError

from accounts.display import format_display_name
from accounts.models import User
from accounts.permissions import PERMISSION_KEYS, can, can_all, can_any, get_permissions, require_permission, user_can
from accounts.validators import StrongPasswordValidator, get_password_strength, password_errors


class TestRoleTable:
    def test_admin_holds_every_key(self):
        assert get_permissions("admin") == list(PERMISSION_KEYS)

    @pytest.mark.parametrize(
        "key",
        ["submitCommission", "viewOwnCommissions", "viewCommandCenter", "submitForms", "viewOwnTraining"],
    )
    def test_user_basics(self, key):
        assert can("user", key) is True

    @pytest.mark.parametrize(
        "key",
        ["viewAllCommissions", "approveCommission", "markCommissionPaid", "viewTeamStats", "viewSubcontractors"],
    )
    def test_user_cannot(self, key):
        assert can("user", key) is False

    def test_manager_sees_but_does_not_approve(self):
        assert can("manager", "viewAllCommissions") is True
        assert can("manager", "viewTeamStats") is True
        assert can("manager", "submitNewSubcontractor") is True
        for key in (
            "approveCommission",
            "denyCommission",
            "markCommissionPaid",
            "viewPaidDrawBalance",
            "assignRoles",
            "viewAllUsers",
            "uploadTrainingContent",
            "viewOPSCompliance",
            "issueWarning",
            "approveSubcontractor",
        ):
            assert can("manager", key) is False, key

    def test_manager_is_a_superset_of_user(self):
        assert set(get_permissions("user")) <= set(get_permissions("manager"))

    def test_missing_or_unknown_role_grants_nothing(self):
        assert can(None, "viewOwnProfile") is False
        assert can("intern", "viewOwnProfile") is False
        assert get_permissions("intern") == []

    def test_unknown_key_raises(self):
        with pytest.raises(KeyError):
            can("admin", "launchRockets")

    def test_can_all_and_any(self):
        assert can_all("manager", ["viewAllCommissions", "viewTeamStats"]) is True
        assert can_all("manager", ["viewAllCommissions", "approveCommission"]) is False
        assert can_any("user", ["approveCommission", "submitCommission"]) is True
        assert can_any("user", []) is False


@pytest.mark.django_db
class TestUserCan:
    def test_active_user(self, rep_user):
        assert user_can(rep_user, "submitCommission") is True
        assert rep_user.has_perm_key("submitCommission") is True

    def test_inactive_user_gets_nothing(self, rep_user):
        rep_user.is_active = False
        assert user_can(rep_user, "viewOwnProfile") is False

    def test_superuser_gets_everything(self, db):
        root = User.objects.create_superuser(email="root@test.com", password="x", first_name="Root", last_name="User")
        root.role = User.Role.USER
        assert user_can(root, "assignRoles") is True

    def test_anonymous(self):
        assert user_can(None, "viewOwnProfile") is False

    def test_require_permission(self, rep_user):
        require_permission(rep_user, "submitCommission")
        with pytest.raises(PermissionError, match="approveCommission"):
            require_permission(rep_user, "approveCommission")

    def test_unknown_key_raises_for_users_too(self, rep_user):
        with pytest.raises(KeyError):
            user_can(rep_user, "launchRockets")


@pytest.mark.parametrize(
    "full_name, email, expected",
    [
        ("sheldon murphy", None, "Sheldon Murphy"),
        ("sheldonmurphy", "sheldon.murphy@tsm.com", "Sheldon Murphy"),
        ("JordanPollei", None, "Jordan Pollei"),
        ("madonna", None, "Madonna"),
        ("", "kim_lee@tsm.com", "Kim Lee"),
        (None, None, "Unknown"),
    ],
)
def test_format_display_name(full_name, email, expected):
    assert format_display_name(full_name, email) == expected


class TestPasswordStrength:
    def test_strong_password(self):
        strength = get_password_strength("Shingle$Roof2025")
        assert strength.score == 4
        assert strength.label == "Strong"
        assert all(strength.requirements.values())
        assert password_errors("Shingle$Roof2025") == []

    def test_weak_password(self):
        strength = get_password_strength("testpass123")
        assert strength.label == "Weak"
        assert strength.requirements["has_number"] is True
        assert strength.requirements["min_length"] is False
        assert len(password_errors("testpass123")) == 3

    def test_validator(self):
        StrongPasswordValidator().validate("Shingle$Roof2025")
        with pytest.raises(ValidationError):
            StrongPasswordValidator().validate("short")
