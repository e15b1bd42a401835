from fastapi import APIRouter

# Public — apartments & room status
from stayhub.api.v1.public.apartments import router as apartments_router

# Public — bookings
from stayhub.api.v1.public.bookings import router as bookings_router

# Public — user profile, notifications & chats
from stayhub.api.v1.public.me import router as me_router

# Admin
from stayhub.api.v1.admin.bookings import router as admin_bookings_router
from stayhub.api.v1.admin.commissions import router as admin_commissions_router
from stayhub.api.v1.admin.users import router as admin_users_router

api_router = APIRouter()

# --- Public: apartments ---
api_router.include_router(apartments_router)

# --- Public: bookings ---
api_router.include_router(bookings_router)

# --- Public: profile & notifications ---
api_router.include_router(me_router)

# --- Admin ---
api_router.include_router(admin_bookings_router)
api_router.include_router(admin_commissions_router)
api_router.include_router(admin_users_router)
