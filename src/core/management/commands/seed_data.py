"""Seed the database with starter accounts, tiers and training categories."""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify


class Command(BaseCommand):
    help = "Seed database with demo users, commission tiers, draw settings and training categories"

    DEMO_USERS = [
        {"email": "admin@tsmroofpro.com", "first_name": "Avery", "last_name": "Admin", "role": "admin", "department": "management", "password": "Admin#Roof2025"},
        {"email": "accounting@tsmroofpro.com", "first_name": "Casey", "last_name": "Books", "role": "admin", "department": "accounting", "password": "Admin#Roof2025"},
        {"email": "manager@tsmroofpro.com", "first_name": "Morgan", "last_name": "Lead", "role": "manager", "department": "sales", "password": "Manager#Roof2025"},
        {"email": "rep1@tsmroofpro.com", "first_name": "Riley", "last_name": "Shingle", "role": "user", "department": "sales", "password": "Rep#Roof2025!"},
        {"email": "rep2@tsmroofpro.com", "first_name": "Jordan", "last_name": "Tile", "role": "user", "department": "sales", "password": "Rep#Roof2025!"},
    ]

    TIERS = [
        {"name": "Standard", "sort_order": 0, "op": ["0.1", "0.125"], "splits": ["0.3", "0.35", "0.4"]},
        {"name": "Senior", "sort_order": 1, "op": ["0.1", "0.125", "0.15"], "splits": ["0.4", "0.45", "0.5"]},
    ]

    TRAINING_CATEGORIES = ["Sales Playbook", "Production", "Safety", "Software"]

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset-passwords",
            action="store_true",
            help="Reset demo users passwords to default values (useful when the DB already contains these users).",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding data...")
        users = self._create_users(reset_passwords=options["reset_passwords"])
        tiers = self._create_tiers()
        self._assign_tiers(users, tiers)
        self._create_draw_settings()
        categories = self._create_training_categories()

        self.stdout.write(self.style.SUCCESS(
            f"Seed complete: {len(users)} users, {len(tiers)} tiers, "
            f"{len(categories)} training categories"
        ))

    def _create_users(self, reset_passwords=False):
        from accounts.models import User

        users = {}
        for data in self.DEMO_USERS:
            data = dict(data)
            password = data.pop("password")
            user, created = User.objects.get_or_create(
                email=data["email"],
                defaults={**data, "employment_status": User.EmploymentStatus.ACTIVE},
            )
            if created or reset_passwords:
                user.set_password(password)
                user.save(update_fields=["password"])
            users[user.email] = user
            self.stdout.write(f"  {'Created' if created else 'Found'} user {user.email} ({user.role})")

        manager = users["manager@tsmroofpro.com"]
        for email in ("rep1@tsmroofpro.com", "rep2@tsmroofpro.com"):
            rep = users[email]
            if rep.manager_id is None:
                rep.manager = manager
                rep.save(update_fields=["manager"])
        return list(users.values())

    def _create_tiers(self):
        from commissions.models import CommissionTier

        tiers = []
        for spec in self.TIERS:
            tier, _ = CommissionTier.objects.get_or_create(
                name=spec["name"],
                defaults={
                    "sort_order": spec["sort_order"],
                    "allowed_op_percentages": spec["op"],
                    "allowed_profit_splits": spec["splits"],
                },
            )
            tiers.append(tier)
        return tiers

    def _assign_tiers(self, users, tiers):
        from commissions.models import UserCommissionTier

        standard = tiers[0]
        for user in users:
            if user.role == "user":
                UserCommissionTier.objects.get_or_create(user=user, defaults={"tier": standard})

    def _create_draw_settings(self):
        from draws.models import DrawSetting

        defaults = {
            DrawSetting.MANAGER_APPROVAL_THRESHOLD: (Decimal("1500.00"), "Draws above this amount need a manager."),
            DrawSetting.MAX_COMMISSION_RATIO: (Decimal("0.50"), "Largest draw as a share of the estimated commission."),
        }
        for key, (value, description) in defaults.items():
            DrawSetting.objects.get_or_create(key=key, defaults={"value": value, "description": description})

    def _create_training_categories(self):
        from training.models import TrainingCategory

        categories = []
        for index, name in enumerate(self.TRAINING_CATEGORIES):
            category, _ = TrainingCategory.objects.get_or_create(
                slug=slugify(name),
                defaults={"name": name, "sort_order": index},
            )
            categories.append(category)
        return categories
