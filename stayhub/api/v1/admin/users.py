from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stayhub.db.session import get_db
from stayhub.api.deps import get_current_admin_user
from stayhub.models.user import User, UserStatus
from stayhub.schemas.user import User as UserSchema, PaymentAccountVerify

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])


def _get_user(user_id: UUID, db: Session) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ---------------------------------------------------------------------------
# Account status. A suspended owner's apartments stop accepting bookings.
# ---------------------------------------------------------------------------


@router.patch("/{user_id}/suspend", response_model=UserSchema)
def suspend_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    user = _get_user(user_id, db)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot suspend your own account")
    user.status = UserStatus.suspended.value
    db.commit()
    db.refresh(user)
    return user


@router.patch("/{user_id}/activate", response_model=UserSchema)
def activate_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    user = _get_user(user_id, db)
    user.status = UserStatus.active.value
    db.commit()
    db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# Owner payout account
# ---------------------------------------------------------------------------


@router.patch("/{user_id}/payment-account/verify", response_model=UserSchema)
def verify_payment_account(
    user_id: UUID,
    data: PaymentAccountVerify,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Mark an owner's payout account as verified so their apartments can take bookings."""
    user = _get_user(user_id, db)
    if data.provider == "paystack" and not (data.subaccount_code or user.payment_subaccount_code):
        raise HTTPException(status_code=400, detail="Paystack accounts require a subaccount code")

    user.payment_provider = data.provider
    if data.subaccount_code:
        user.payment_subaccount_code = data.subaccount_code
    user.payment_account_verified = True
    db.commit()
    db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# Guest identity. Checked at booking time when
# REQUIRE_GUEST_IDENTITY_VERIFICATION is on.
# ---------------------------------------------------------------------------


@router.patch("/{user_id}/identity/verify", response_model=UserSchema)
def verify_identity(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    user = _get_user(user_id, db)
    user.identity_verified = True
    db.commit()
    db.refresh(user)
    return user


@router.patch("/{user_id}/identity/revoke", response_model=UserSchema)
def revoke_identity(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Withdraw a verification. Existing bookings are kept; new ones are refused."""
    user = _get_user(user_id, db)
    user.identity_verified = False
    db.commit()
    db.refresh(user)
    return user
