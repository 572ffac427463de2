from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text=(
                            "Designates whether this user should be treated as active. "
                            "Unselect this instead of deleting accounts."
                        ),
                        verbose_name="active",
                    ),
                ),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("email", models.EmailField(max_length=254, unique=True)),
                (
                    "role",
                    models.CharField(
                        choices=[("customer", "Customer"), ("company", "Company")], default="customer", max_length=16
                    ),
                ),
                (
                    "phone",
                    models.CharField(
                        blank=True,
                        help_text="Contact number in E.164 format",
                        max_length=16,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^\\+[1-9]\\d{1,14}\\Z", message="Use E.164 format (e.g., +40712345678)"
                            )
                        ],
                    ),
                ),
                ("phone_verified", models.BooleanField(default=False)),
                ("phone_verification_code", models.CharField(blank=True, max_length=6, null=True)),
                ("phone_verification_expiry", models.DateTimeField(blank=True, null=True)),
                ("referral_code", models.CharField(blank=True, max_length=16, null=True, unique=True)),
                ("referred_by", models.CharField(blank=True, db_index=True, max_length=16, null=True)),
                ("has_used_referral", models.BooleanField(default=False)),
                ("credits", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("referral_bonus", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            "The groups this user belongs to. A user will get all permissions "
                            "granted to each of their groups."
                        ),
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
                "indexes": [models.Index(fields=["phone"], name="users_user_phone_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("phone_verified", True)),
                        fields=("phone",),
                        name="unique_verified_phone",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("phone_verification_code__isnull", True), ("phone_verification_expiry__isnull", True)),
                            models.Q(
                                ("phone_verification_code__isnull", False), ("phone_verification_expiry__isnull", False)
                            ),
                            _connector="OR",
                        ),
                        name="verification_code_and_expiry_together",
                    ),
                ],
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
    ]
