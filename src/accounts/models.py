import uuid

from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)
from django.db import models
from django.utils import timezone


class UserManager(BaseUserManager):
    """Custom manager for the User model that uses email as the unique identifier."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("An email address is required.")
        email = self.normalize_email(email)
        extra_fields.setdefault("is_active", True)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", User.Role.ADMIN)
        extra_fields.setdefault("employment_status", User.EmploymentStatus.ACTIVE)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Employee account for the portal.

    Uses email as the unique identifier instead of a username. The ``role``
    tier drives every permission check (see ``accounts.permissions``);
    ``department`` only routes notifications and never grants access.
    """

    class Role(models.TextChoices):
        USER = "user", "User"
        MANAGER = "manager", "Manager"
        ADMIN = "admin", "Admin"

    class Department(models.TextChoices):
        MANAGEMENT = "management", "Management"
        ACCOUNTING = "accounting", "Accounting"
        OPERATIONS = "operations", "Operations"
        HR_IT = "hr_it", "HR / IT"
        SALES = "sales", "Sales"
        PRODUCTION = "production", "Production"
        OFFICE = "office", "Office"
        VA = "va", "Virtual Assistant"

    class EmploymentStatus(models.TextChoices):
        PENDING = "pending", "Pending approval"
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"
        REJECTED = "rejected", "Rejected"

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    email = models.EmailField(
        "email address",
        unique=True,
        error_messages={
            "unique": "A user with that email address already exists.",
        },
    )
    first_name = models.CharField("first name", max_length=150, blank=True, default="")
    last_name = models.CharField("last name", max_length=150, blank=True, default="")
    phone = models.CharField("phone", max_length=30, blank=True, default="")
    role = models.CharField(
        "role",
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
        db_index=True,
    )
    department = models.CharField(
        "department",
        max_length=20,
        choices=Department.choices,
        blank=True,
        default="",
    )
    employment_status = models.CharField(
        "employment status",
        max_length=20,
        choices=EmploymentStatus.choices,
        default=EmploymentStatus.PENDING,
        db_index=True,
    )
    manager = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="direct_reports",
        verbose_name="manager",
    )
    is_active = models.BooleanField("active", default=True, db_index=True)
    is_staff = models.BooleanField("staff status", default=False)
    date_joined = models.DateTimeField("date joined", default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return self.display_name

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def get_short_name(self):
        return self.first_name

    @property
    def display_name(self):
        from accounts.display import format_display_name

        return format_display_name(self.get_full_name(), self.email)

    # ------------------------------------------------------------------
    # Role helper properties
    # ------------------------------------------------------------------

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_manager(self):
        return self.role == self.Role.MANAGER

    @property
    def is_rep(self):
        return self.role == self.Role.USER

    @property
    def is_employed(self):
        return self.employment_status == self.EmploymentStatus.ACTIVE

    def has_perm_key(self, key):
        from accounts.permissions import can

        return can(self.role, key)
