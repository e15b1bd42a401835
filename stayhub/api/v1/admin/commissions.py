from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stayhub.db.session import get_db
from stayhub.api.deps import get_current_admin_user
from stayhub.models.user import User
from stayhub.models.commission import Commission
from stayhub.schemas.commission import Commission as CommissionSchema, CommissionPaid, CommissionFailed
from stayhub.schemas.common import PaginatedResponse
from stayhub.services import commissions

router = APIRouter(prefix="/admin/commissions", tags=["Admin - Commissions"])


@router.get("/", response_model=PaginatedResponse[CommissionSchema])
def list_commissions(
    status: Optional[str] = Query(None, description="Filter by commission status (pending, paid, failed)"),
    owner_id: Optional[UUID] = Query(None, description="Filter by apartment owner"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(Commission)
    if status:
        query = query.filter(Commission.status == status)
    if owner_id:
        query = query.filter(Commission.owner_id == owner_id)

    total = query.count()
    items = (
        query.order_by(Commission.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=items,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/{commission_id}/paid", response_model=CommissionSchema)
def mark_commission_paid(
    commission_id: UUID,
    data: CommissionPaid,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    return commissions.mark_paid(db, commission_id, payment_reference=data.payment_reference)


@router.patch("/{commission_id}/failed", response_model=CommissionSchema)
def mark_commission_failed(
    commission_id: UUID,
    data: CommissionFailed,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    return commissions.mark_failed(db, commission_id, notes=data.notes)
