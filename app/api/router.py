"""Top-level API router aggregation."""

from fastapi import APIRouter

from app.api.routes.audit import router as audit_router
from app.api.routes.branches import router as branches_router
from app.api.routes.commissions import router as commissions_router
from app.api.routes.equity import router as equity_router
from app.api.routes.expenses import router as expenses_router
from app.api.routes.ezwich import router as ezwich_router
from app.api.routes.fees import router as fees_router
from app.api.routes.float_accounts import router as float_accounts_router
from app.api.routes.gl import router as gl_router
from app.api.routes.jumia import router as jumia_router
from app.api.routes.reports import router as reports_router
from app.api.routes.transactions import router as transactions_router

api_router = APIRouter()
api_router.include_router(branches_router)
api_router.include_router(gl_router)
api_router.include_router(float_accounts_router)
api_router.include_router(transactions_router)
api_router.include_router(fees_router)
api_router.include_router(commissions_router)
api_router.include_router(expenses_router)
api_router.include_router(equity_router)
api_router.include_router(ezwich_router)
api_router.include_router(jumia_router)
api_router.include_router(reports_router)
api_router.include_router(audit_router)
