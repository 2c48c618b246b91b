"""Dependency helpers for API layer."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.session import get_db_session
from app.ledger.service import LedgerService
from app.services.audit_service import AuditService
from app.services.branch_service import BranchService
from app.services.commission_service import CommissionService
from app.services.equity_service import EquityService
from app.services.expense_service import ExpenseService
from app.services.ezwich_card_service import EZwichCardService
from app.services.fee_service import FeeService
from app.services.float_service import FloatService
from app.services.gl_account_service import GLAccountService
from app.services.journal_service import JournalService
from app.services.jumia_package_service import JumiaPackageService
from app.services.mapping_service import MappingService
from app.services.report_service import ReportService
from app.services.service_transaction_service import ServiceTransactionService


async def get_session(session: AsyncSession = Depends(get_db_session)) -> AsyncSession:
    """Pass through DB session dependency for explicit typing."""

    return session


def get_branch_service() -> BranchService:
    return BranchService()


def get_gl_account_service() -> GLAccountService:
    return GLAccountService()


def get_mapping_service() -> MappingService:
    return MappingService()


def get_ledger_service() -> LedgerService:
    return LedgerService()


def get_journal_service() -> JournalService:
    return JournalService()


def get_float_service() -> FloatService:
    """Build float account service dependency."""

    return FloatService()


def get_service_transaction_service() -> ServiceTransactionService:
    return ServiceTransactionService()


def get_fee_service() -> FeeService:
    return FeeService()


def get_commission_service() -> CommissionService:
    return CommissionService()


def get_expense_service() -> ExpenseService:
    return ExpenseService()


def get_ezwich_card_service() -> EZwichCardService:
    return EZwichCardService()


def get_jumia_package_service() -> JumiaPackageService:
    return JumiaPackageService()


def get_equity_service() -> EquityService:
    return EquityService()


def get_report_service() -> ReportService:
    """Build report service dependency."""

    return ReportService()


def get_audit_service() -> AuditService:
    return AuditService()
