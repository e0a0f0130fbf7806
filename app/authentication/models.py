"""
Authentication models.

This module defines:
- ActorRole: Closed enumeration of the actor kinds that act on orders
- User: Custom user model with email-based authentication, bound to a store

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class ActorRole(models.TextChoices):
    """
    Kinds of actor that can act on a store's orders.

    The set is closed: every decision that depends on the role must handle
    all four members explicitly.

    - ADMIN: Store administrator (dashboard user)
    - SUPPLIER: Fulfils order lines from its own stock
    - RESELLER: Owns the storefront and earns the reseller share
    - SYSTEM: Background jobs acting on behalf of the platform
    """

    ADMIN = "admin", "Admin"
    SUPPLIER = "supplier", "Supplier"
    RESELLER = "reseller", "Reseller"
    SYSTEM = "system", "System"

    def can_initiate_refund(self) -> bool:
        """Return whether this role may reverse a paid order."""
        if self is ActorRole.ADMIN:
            return True
        if self is ActorRole.SYSTEM:
            return True
        if self is ActorRole.SUPPLIER:
            return False
        if self is ActorRole.RESELLER:
            return False
        raise ValueError(f"Unhandled actor role: {self!r}")


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Actor kind used for authorization and audit attribution
        store: Store this user operates (None for platform-level users)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email="admin@store.example",
            password="securepassword",
            role=ActorRole.ADMIN,
            store=store,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    role = models.CharField(
        max_length=20,
        choices=ActorRole.choices,
        default=ActorRole.RESELLER,
        help_text="Actor kind used for authorization and audit attribution",
    )
    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="members",
        help_text="Store this user operates",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def actor_role(self) -> ActorRole:
        """Return the role as an ActorRole member."""
        return ActorRole(self.role)
