"""Role hierarchy and transition permissions."""

from enum import Enum

from fieldbook.domain.transition import Actor, Transition


class UserRole(str, Enum):
    """User roles in the system, lowest to highest."""

    GUEST = "guest"
    CUSTOMER = "customer"
    CASHIER = "cashier"
    OPERATOR = "operator"  # field operator
    MANAGER = "manager"
    SUPERVISOR = "supervisor"


ROLE_LEVELS: dict[UserRole, int] = {
    UserRole.GUEST: 1,
    UserRole.CUSTOMER: 2,
    UserRole.CASHIER: 3,
    UserRole.OPERATOR: 4,
    UserRole.MANAGER: 5,
    UserRole.SUPERVISOR: 6,
}


class Permission(str, Enum):
    """Non-transition permissions."""

    VIEW_ALL_BOOKINGS = "view_all_bookings"
    RECORD_PAYMENT = "record_payment"
    CREATE_CASH_BOOKING = "create_cash_booking"
    REFUND_PAYMENT = "refund_payment"
    MANAGE_AUTO_COMPLETION = "manage_auto_completion"


# Minimum role for each lifecycle transition
TRANSITION_MIN_ROLE: dict[Transition, UserRole] = {
    Transition.CREATE: UserRole.CUSTOMER,
    Transition.CONFIRM: UserRole.OPERATOR,
    Transition.REJECT: UserRole.OPERATOR,
    Transition.CANCEL: UserRole.OPERATOR,
    Transition.COMPLETE: UserRole.OPERATOR,
}

# Transitions a booking's owner may request regardless of staff level
OWNER_TRANSITIONS = frozenset({Transition.CANCEL})

# The scheduler acts as "system" and may only complete bookings
SYSTEM_TRANSITIONS = frozenset({Transition.COMPLETE})

PERMISSION_MIN_ROLE: dict[Permission, UserRole] = {
    Permission.VIEW_ALL_BOOKINGS: UserRole.CASHIER,
    Permission.RECORD_PAYMENT: UserRole.CASHIER,
    Permission.CREATE_CASH_BOOKING: UserRole.CASHIER,
    Permission.REFUND_PAYMENT: UserRole.MANAGER,
    Permission.MANAGE_AUTO_COMPLETION: UserRole.MANAGER,
}


def role_level(role: str | UserRole) -> int:
    """Numeric level of a role; unknown roles rank below guest."""
    try:
        return ROLE_LEVELS[UserRole(role)]
    except ValueError:
        return 0


def has_min_role(role: str | UserRole, minimum: UserRole) -> bool:
    return role_level(role) >= ROLE_LEVELS[minimum]


def has_permission(role: str | UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return has_min_role(role, PERMISSION_MIN_ROLE[permission])


def is_permitted(role: str | UserRole, transition: Transition, is_owner: bool = False) -> bool:
    """Whether a user with ``role`` may request ``transition``.

    Args:
        role: Role of the acting user
        transition: Requested lifecycle transition
        is_owner: Whether the actor owns the booking

    Returns:
        True if the transition is allowed for this role/ownership
    """
    if has_min_role(role, TRANSITION_MIN_ROLE[transition]):
        return True
    return (
        is_owner
        and transition in OWNER_TRANSITIONS
        and has_min_role(role, UserRole.CUSTOMER)
    )


def actor_is_permitted(actor: Actor, transition: Transition, is_owner: bool = False) -> bool:
    if actor.is_system:
        return transition in SYSTEM_TRANSITIONS
    return is_permitted(actor.role, transition, is_owner=is_owner)
