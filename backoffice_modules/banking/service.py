"""
backoffice_modules.banking.service
==================================

Responsibility:
    Orchestrates bank reconciliation: load a worksheet, toggle candidates,
    save progress, finalize.  Balance arithmetic lives in
    ``backoffice_engines.reconciliation``; the journal-line fan-out lives in
    ``backoffice_kernel.services.LineReconciliationService``.  This module is
    the glue and owns the transaction boundary.

Architecture:
    Module layer.  Reads through ``selectors.py``, writes ORM rows from
    ``orm.py``, commits or rolls back before returning.

Invariants enforced:
    - Every operation runs for an explicit ``ReconciliationContext``; a bank
      account of another company is reported as not found.
    - save_progress and finalize are each one transaction: header, items,
      journal-line flags, account balance and statement stamp commit
      together or not at all.
    - Finalize requires an ending balance and a cleared balance within
      tolerance of it.  Balances are recomputed here, never taken from the
      caller's worksheet.
    - One in-progress reconciliation per bank account; one completed
      reconciliation per bank account and ending date.

Failure modes:
    - ``BankAccountNotFoundError`` / ``ReconciliationNotFoundError`` for
      unknown or foreign ids.
    - ``MissingEndingBalanceError`` / ``BalanceMismatchError`` block
      finalize; nothing is written.
    - ``ReconciliationPersistenceError`` when a write fails; the session is
      rolled back first and earlier saved state is intact.
    - A failed ledger cascade while toggling is rolled back, logged, and
      reported on the returned worksheet's ``warnings``.

Usage::

    service = ReconciliationService(session, clock=clock)
    ctx = ReconciliationContext(company_id=company_id, actor_id=user_id)
    ws = service.start(ctx, bank_account_id, date(2025, 1, 31), Decimal("1300.00"))
    ws = service.set_cleared(ctx, ws, deposit_id, TransactionType.DEPOSIT, True)
    recon = service.finalize(ctx, ws)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice_config import BackofficeConfig
from backoffice_engines.reconciliation import (
    ReconciliationBalances,
    TransactionCandidate,
    TransactionType,
    apply_cleared_keys,
    compute_balances,
    set_cleared as set_candidate_cleared,
)
from backoffice_kernel.db.types import to_money
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
    BalanceMismatchError,
    BankAccountNotFoundError,
    ConfigurationError,
    MissingEndingBalanceError,
    ReconciliationNotFoundError,
    ReconciliationPersistenceError,
    StatementNotFoundError,
)
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_kernel.services.line_reconciliation_service import (
    LineReconciliationService,
)
from backoffice_modules.banking.config import ReconciliationConfig
from backoffice_modules.banking.models import (
    BankAccount,
    PaymentClearance,
    PaymentStatus,
    Reconciliation,
    ReconciliationContext,
    ReconciliationStatus,
    ReconciliationWorksheet,
)
from backoffice_modules.banking.orm import (
    BankAccountModel,
    BankStatementModel,
    PaymentModel,
    ReconciliationItemModel,
    ReconciliationModel,
)
from backoffice_modules.banking.report import (
    ReconciliationReport,
    ReconciliationReportBuilder,
)
from backoffice_modules.banking.selectors import (
    ReconciliationCandidateSelector,
    ReconciliationSelector,
)
from backoffice_modules.banking.storage import (
    LocalObjectStorage,
    ObjectStorage,
    statement_key,
)
from backoffice_modules.banking.workflows import (
    CLEARED_BALANCE_MATCHES_ENDING,
    ENDING_BALANCE_ENTERED,
)

logger = get_logger("modules.banking.service")


class ReconciliationService:
    """
    Bank reconciliation operations for one session.

    Contract:
        Read operations (``start``, ``list_*``, ``payment_clearance``,
        ``build_report``) never write.  Write operations commit on success
        and roll back on failure; none leaves the session with pending
        changes.

    Non-goals:
        - Does NOT post adjusting journal entries.
        - Does NOT coordinate concurrent editors beyond the unique indexes.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReconciliationConfig | None = None,
        storage: ObjectStorage | None = None,
        statement_expiry_seconds: int = 3600,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReconciliationConfig()
        self._storage = storage
        self._statement_expiry_seconds = statement_expiry_seconds

        self._selector = ReconciliationSelector(session)
        self._candidates = ReconciliationCandidateSelector(session)
        self._ledger = LineReconciliationService(session, self._clock)

    @classmethod
    def from_config(
        cls,
        session: Session,
        config: BackofficeConfig,
        clock: Clock | None = None,
    ) -> ReconciliationService:
        """Service wired with the tolerance and statement storage of ``config``."""
        return cls(
            session,
            clock=clock,
            config=ReconciliationConfig.from_settings(config.reconciliation),
            storage=LocalObjectStorage.from_config(config.storage, clock=clock),
            statement_expiry_seconds=config.storage.default_expiry_seconds,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _log_context(
        self,
        context: ReconciliationContext,
        bank_account_id: UUID | None = None,
        reconciliation_id: UUID | None = None,
    ):
        return LogContext.bind(
            company_id=context.company_id,
            actor_id=context.actor_id,
            bank_account_id=bank_account_id,
            reconciliation_id=reconciliation_id,
        )

    def _require_bank_account(
        self, context: ReconciliationContext, bank_account_id: UUID,
    ) -> BankAccount:
        account = self._selector.get_bank_account(context.company_id, bank_account_id)
        if account is None:
            raise BankAccountNotFoundError(
                str(bank_account_id), str(context.company_id),
            )
        return account

    def _balances(
        self,
        beginning_balance: Decimal,
        ending_balance: Decimal | None,
        candidates: Sequence[TransactionCandidate],
    ) -> ReconciliationBalances:
        return compute_balances(
            beginning_balance=beginning_balance,
            ending_balance=ending_balance,
            candidates=candidates,
            tolerance=self._config.tolerance,
        )

    def _row_for_status(
        self,
        bank_account_id: UUID,
        status: ReconciliationStatus,
        ending_date: date | None = None,
    ) -> ReconciliationModel | None:
        stmt = select(ReconciliationModel).where(
            ReconciliationModel.bank_account_id == bank_account_id,
            ReconciliationModel.status == status.value,
        )
        if ending_date is not None:
            stmt = stmt.where(ReconciliationModel.ending_date == ending_date)
        return self._session.execute(stmt).scalar_one_or_none()

    def _cleared_keys(self, reconciliation_id: UUID) -> set[tuple[UUID, TransactionType]]:
        return {
            (item.transaction_id, item.transaction_type)
            for item in self._selector.get_items(reconciliation_id)
            if item.is_cleared
        }

    def _apply_header(
        self,
        row: ReconciliationModel,
        worksheet: ReconciliationWorksheet,
        balances: ReconciliationBalances,
        actor_id: UUID,
    ) -> None:
        row.beginning_balance = worksheet.beginning_balance
        row.beginning_date = worksheet.beginning_date
        row.ending_balance = worksheet.ending_balance
        row.ending_date = worksheet.ending_date
        row.cleared_balance = balances.cleared_balance
        row.adjusted_balance = balances.adjusted_balance
        row.bank_statement_id = worksheet.bank_statement_id
        row.notes = worksheet.notes
        row.updated_by_id = actor_id

    def _replace_items(
        self,
        row: ReconciliationModel,
        candidates: Sequence[TransactionCandidate],
        actor_id: UUID,
    ) -> None:
        """Delete every item of ``row`` and insert one per candidate."""
        self._session.execute(
            delete(ReconciliationItemModel).where(
                ReconciliationItemModel.reconciliation_id == row.id,
            )
        )
        now = self._clock.now()
        self._session.add_all(
            ReconciliationItemModel(
                reconciliation_id=row.id,
                transaction_type=c.transaction_type.value,
                transaction_id=c.transaction_id,
                source=c.source.value,
                amount=c.amount,
                is_cleared=c.cleared,
                cleared_at=now if c.cleared else None,
                created_by_id=actor_id,
            )
            for c in candidates
        )
        self._session.flush()
        self._session.expire(row, ["items"])

    # =========================================================================
    # Read operations
    # =========================================================================

    def list_bank_accounts(self, context: ReconciliationContext) -> list[BankAccount]:
        """Active bank accounts of the company, ordered by name."""
        return self._selector.list_active_bank_accounts(context.company_id)

    def start(
        self,
        context: ReconciliationContext,
        bank_account_id: UUID,
        ending_date: date,
        ending_balance: Decimal | None = None,
    ) -> ReconciliationWorksheet:
        """
        Load a worksheet for ``bank_account_id`` up to ``ending_date``.

        An in-progress reconciliation of the account is resumed: its id,
        beginning values, notes, statement and (when ``ending_balance`` is
        None) ending balance are reused, and its saved cleared flags are
        re-applied.  Without one, a completed reconciliation ending on
        ``ending_date`` is reopened the same way, and the transactions it
        cleared are offered again with their cleared flags set.  Otherwise
        the beginning balance is the ending balance of the latest completed
        reconciliation, falling back to the account's current balance.

        Raises:
            BankAccountNotFoundError: unknown account or another company's.
        """
        with self._log_context(context, bank_account_id):
            account = self._require_bank_account(context, bank_account_id)

            in_progress = self._selector.get_in_progress(account.id)
            reopened = None
            if in_progress is None:
                reopened = self._selector.get_completed_for_period(
                    account.id, ending_date,
                )
            basis = in_progress or reopened

            excluded = self._selector.cleared_transaction_ids(
                account.id,
                exclude_reconciliation_id=reopened.id if reopened else None,
            )
            candidates = tuple(
                self._candidates.load_candidates(account, ending_date, excluded)
            )

            if basis is not None:
                candidates = apply_cleared_keys(candidates, self._cleared_keys(basis.id))
                beginning_balance = basis.beginning_balance
                beginning_date = basis.beginning_date
                if ending_balance is None:
                    ending_balance = basis.ending_balance
                reconciliation_id = basis.id
                notes = basis.notes
                bank_statement_id = basis.bank_statement_id
            else:
                latest = self._selector.get_latest_completed(account.id)
                if latest is not None:
                    beginning_balance = to_money(latest.ending_balance)
                    beginning_date = latest.ending_date
                else:
                    beginning_balance = to_money(account.current_balance)
                    beginning_date = account.balance_date
                reconciliation_id = None
                notes = None
                bank_statement_id = None

            worksheet = ReconciliationWorksheet(
                bank_account=account,
                beginning_balance=beginning_balance,
                beginning_date=beginning_date,
                ending_date=ending_date,
                ending_balance=ending_balance,
                candidates=candidates,
                balances=self._balances(beginning_balance, ending_balance, candidates),
                reconciliation_id=reconciliation_id,
                bank_statement_id=bank_statement_id,
                notes=notes,
            )

            logger.info(
                "reconciliation_resumed" if reconciliation_id else "reconciliation_started",
                extra={
                    "reconciliation_id": str(reconciliation_id) if reconciliation_id else None,
                    "ending_date": ending_date.isoformat(),
                    "beginning_balance": str(beginning_balance),
                    "candidate_count": len(candidates),
                    "excluded_count": len(excluded),
                },
            )
            return worksheet

    def list_reconciliations(
        self, context: ReconciliationContext, bank_account_id: UUID,
    ) -> list[Reconciliation]:
        """Reconciliation history of an account, newest ending date first."""
        self._require_bank_account(context, bank_account_id)
        return self._selector.list_for_account(context.company_id, bank_account_id)

    def payment_clearance(
        self, context: ReconciliationContext, payment_id: UUID,
    ) -> PaymentClearance | None:
        """Which completed reconciliation cleared ``payment_id``, or None."""
        return self._selector.payment_clearance(context.company_id, payment_id)

    def build_report(
        self, context: ReconciliationContext, reconciliation_id: UUID,
    ) -> ReconciliationReport:
        """
        Raises:
            ReconciliationNotFoundError: unknown id or another company's.
        """
        with self._log_context(context, reconciliation_id=reconciliation_id):
            report = ReconciliationReportBuilder(self._session).build(
                context.company_id, reconciliation_id,
            )
            logger.info(
                "reconciliation_report_built",
                extra={
                    "cleared_deposit_count": len(report.cleared_deposits.lines),
                    "cleared_payment_count": len(report.cleared_payments.lines),
                    "uncleared_deposit_count": len(report.uncleared_deposits.lines),
                    "uncleared_payment_count": len(report.uncleared_payments.lines),
                },
            )
            return report

    # =========================================================================
    # Worksheet edits
    # =========================================================================

    def set_cleared(
        self,
        context: ReconciliationContext,
        worksheet: ReconciliationWorksheet,
        transaction_id: UUID,
        transaction_type: TransactionType,
        cleared: bool,
    ) -> ReconciliationWorksheet:
        """
        Toggle one candidate and recompute balances.

        For a ledger-line candidate every line of its journal entry is
        reconciled (or un-reconciled) immediately and committed.  If that
        write fails it is rolled back and the toggle is still returned,
        with a warning.

        Raises:
            CandidateNotFoundError: the transaction is not on the worksheet.
        """
        with self._log_context(
            context, worksheet.bank_account_id, worksheet.reconciliation_id,
        ):
            candidates = set_candidate_cleared(
                worksheet.candidates, transaction_id, transaction_type, cleared,
            )
            key = (transaction_id, TransactionType(transaction_type))
            candidate = next(c for c in candidates if c.key == key)

            warnings: tuple[str, ...] = ()
            if candidate.is_ledger_line:
                try:
                    self._ledger.set_entries_reconciled(
                        [candidate.transaction_id], cleared, context.actor_id,
                    )
                    self._session.commit()
                except SQLAlchemyError as exc:
                    self._session.rollback()
                    logger.warning(
                        "ledger_cascade_failed",
                        extra={
                            "transaction_id": str(transaction_id),
                            "journal_entry_id": str(candidate.journal_entry_id),
                            "cleared": cleared,
                        },
                        exc_info=True,
                    )
                    warnings = (
                        f"Journal entry {candidate.journal_entry_id} could not be "
                        f"updated: {exc}",
                    )

            logger.info(
                "reconciliation_candidate_toggled",
                extra={
                    "transaction_id": str(transaction_id),
                    "transaction_type": key[1].value,
                    "source": candidate.source.value,
                    "cleared": cleared,
                },
            )
            return worksheet.evolve(
                candidates=candidates,
                balances=self._balances(
                    worksheet.beginning_balance, worksheet.ending_balance, candidates,
                ),
                warnings=warnings,
            )

    def set_ending_balance(
        self,
        worksheet: ReconciliationWorksheet,
        ending_balance: Decimal | None,
    ) -> ReconciliationWorksheet:
        return worksheet.evolve(
            ending_balance=ending_balance,
            balances=self._balances(
                worksheet.beginning_balance, ending_balance, worksheet.candidates,
            ),
            warnings=(),
        )

    def set_notes(
        self, worksheet: ReconciliationWorksheet, notes: str | None,
    ) -> ReconciliationWorksheet:
        return worksheet.evolve(notes=notes, warnings=())

    # =========================================================================
    # Save / finalize
    # =========================================================================

    def save_progress(
        self,
        context: ReconciliationContext,
        worksheet: ReconciliationWorksheet,
    ) -> Reconciliation:
        """
        Upsert the account's in-progress reconciliation and replace its items.

        Postconditions:
            - Exactly one in-progress row for the account, carrying the
              worksheet's balances, dates, notes and statement.
            - One item per candidate with its cleared flag.

        Raises:
            BankAccountNotFoundError: account unknown for the company.
            StatementNotFoundError: linked statement unknown for the company.
            ReconciliationPersistenceError: any write failed; rolled back.
        """
        with self._log_context(context, worksheet.bank_account_id):
            account = self._require_bank_account(context, worksheet.bank_account_id)
            self._require_statement(context, worksheet.bank_statement_id)
            balances = self._balances(
                worksheet.beginning_balance,
                worksheet.ending_balance,
                worksheet.candidates,
            )
            logger.info(
                "reconciliation_save_started",
                extra={
                    "candidate_count": len(worksheet.candidates),
                    "cleared_count": len(worksheet.cleared_candidates),
                },
            )
            try:
                row = self._row_for_status(account.id, ReconciliationStatus.IN_PROGRESS)
                if row is None:
                    row = ReconciliationModel(
                        company_id=context.company_id,
                        bank_account_id=account.id,
                        status=ReconciliationStatus.IN_PROGRESS.value,
                        created_by_id=context.actor_id,
                    )
                    self._session.add(row)
                self._apply_header(row, worksheet, balances, context.actor_id)
                self._session.flush()

                self._replace_items(row, worksheet.candidates, context.actor_id)
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error(
                    "reconciliation_save_failed",
                    extra={"reason": str(exc)},
                    exc_info=True,
                )
                raise ReconciliationPersistenceError(
                    "save", str(account.id), str(exc),
                ) from exc

            result = row.to_dto()
            logger.info(
                "reconciliation_save_completed",
                extra={
                    "reconciliation_id": str(result.id),
                    "cleared_balance": str(result.cleared_balance),
                },
            )
            return result

    def finalize(
        self,
        context: ReconciliationContext,
        worksheet: ReconciliationWorksheet,
    ) -> Reconciliation:
        """
        Complete the reconciliation.

        Preconditions:
            - An ending balance is entered.
            - |cleared balance - ending balance| < tolerance.

        Postconditions (one transaction):
            - A completed row for the account and ending date, stamped with
              ``reconciled_by_id`` / ``reconciled_at``.  An existing completed
              row for the period is updated in place and a separate
              in-progress row is removed; otherwise the in-progress row is
              promoted, or a new row inserted.
            - When the period is already completed, that row keeps its
              beginning balance and date and its earlier cleared items stay
              cleared alongside the worksheet's.
            - Items replaced by the cleared candidates.
            - Every line of each cleared ledger line's journal entry is
              reconciled; cleared payment records are marked cleared.
            - The account's current balance and balance date become the
              ending balance and ending date.
            - The attached statement is stamped with the statement period.

        Raises:
            MissingEndingBalanceError, BalanceMismatchError: nothing written.
            StatementNotFoundError: linked statement unknown for the company;
                nothing written.
            ReconciliationPersistenceError: a write failed; rolled back.
        """
        with self._log_context(
            context, worksheet.bank_account_id, worksheet.reconciliation_id,
        ):
            account = self._require_bank_account(context, worksheet.bank_account_id)
            logger.info(
                "reconciliation_finalize_started",
                extra={"ending_date": worksheet.ending_date.isoformat()},
            )

            if worksheet.ending_balance is None:
                logger.warning(
                    "reconciliation_finalize_rejected",
                    extra={"guard": ENDING_BALANCE_ENTERED.name},
                )
                raise MissingEndingBalanceError(str(account.id))

            self._require_statement(context, worksheet.bank_statement_id)
            worksheet = self._onto_completed_period(account, worksheet)

            balances = self._balances(
                worksheet.beginning_balance,
                worksheet.ending_balance,
                worksheet.candidates,
            )
            if not balances.is_cleared_balanced:
                logger.warning(
                    "reconciliation_finalize_rejected",
                    extra={
                        "guard": CLEARED_BALANCE_MATCHES_ENDING.name,
                        "cleared_balance": str(balances.cleared_balance),
                        "ending_balance": str(worksheet.ending_balance),
                        "difference": str(balances.difference),
                    },
                )
                raise BalanceMismatchError(
                    balances.cleared_balance,
                    worksheet.ending_balance,
                    balances.difference,
                )

            cleared = worksheet.cleared_candidates
            try:
                row = self._finalize_target(context, account.id, worksheet.ending_date)

                now = self._clock.now()
                self._apply_header(row, worksheet, balances, context.actor_id)
                row.status = ReconciliationStatus.COMPLETED.value
                row.reconciled_by_id = context.actor_id
                row.reconciled_at = now
                self._session.flush()

                self._replace_items(row, cleared, context.actor_id)

                entry_ids = self._ledger.set_entries_reconciled(
                    [c.transaction_id for c in cleared if c.is_ledger_line],
                    True,
                    context.actor_id,
                )
                self._mark_payments_cleared(
                    [c.transaction_id for c in cleared if not c.is_ledger_line
                     and c.transaction_type == TransactionType.PAYMENT],
                    context.actor_id,
                )
                self._update_account_balance(
                    account.id,
                    worksheet.ending_balance,
                    worksheet.ending_date,
                    context.actor_id,
                )
                if worksheet.bank_statement_id is not None:
                    self._stamp_statement(
                        context.company_id,
                        worksheet.bank_statement_id,
                        worksheet.ending_date,
                        context.actor_id,
                    )
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error(
                    "reconciliation_finalize_failed",
                    extra={"reason": str(exc)},
                    exc_info=True,
                )
                raise ReconciliationPersistenceError(
                    "finalize", str(account.id), str(exc),
                ) from exc

            result = row.to_dto()
            logger.info(
                "reconciliation_finalize_completed",
                extra={
                    "reconciliation_id": str(result.id),
                    "ending_balance": str(result.ending_balance),
                    "cleared_count": len(cleared),
                    "journal_entry_count": len(entry_ids),
                },
            )
            return result

    def _onto_completed_period(
        self, account: BankAccount, worksheet: ReconciliationWorksheet,
    ) -> ReconciliationWorksheet:
        """
        Rebase a worksheet onto the completed reconciliation of its period.

        A worksheet loaded before that reconciliation existed, or without
        reopening it, starts from the next period's beginning balance and
        omits what the completed row already cleared.  The completed row's
        beginning values are kept and its cleared items are merged with
        the worksheet's own.
        """
        completed = self._selector.get_completed_for_period(
            account.id, worksheet.ending_date,
        )
        if completed is None or worksheet.reconciliation_id == completed.id:
            return worksheet

        excluded = self._selector.cleared_transaction_ids(
            account.id, exclude_reconciliation_id=completed.id,
        )
        cleared_keys = self._cleared_keys(completed.id) | {
            c.key for c in worksheet.cleared_candidates
        }
        candidates = apply_cleared_keys(
            self._candidates.load_candidates(account, worksheet.ending_date, excluded),
            cleared_keys,
        )
        logger.info(
            "reconciliation_period_reopened",
            extra={
                "reconciliation_id": str(completed.id),
                "carried_cleared_count": len(cleared_keys),
            },
        )
        return worksheet.evolve(
            beginning_balance=completed.beginning_balance,
            beginning_date=completed.beginning_date,
            candidates=candidates,
            reconciliation_id=completed.id,
        )

    def _finalize_target(
        self,
        context: ReconciliationContext,
        bank_account_id: UUID,
        ending_date: date,
    ) -> ReconciliationModel:
        """The row finalize writes to, removing a superseded in-progress row."""
        in_progress = self._row_for_status(
            bank_account_id, ReconciliationStatus.IN_PROGRESS,
        )
        completed = self._row_for_status(
            bank_account_id, ReconciliationStatus.COMPLETED, ending_date,
        )

        if completed is not None:
            if in_progress is not None and in_progress.id != completed.id:
                self._session.delete(in_progress)
                self._session.flush()
            row = completed
        elif in_progress is not None:
            row = in_progress
        else:
            row = ReconciliationModel(
                company_id=context.company_id,
                bank_account_id=bank_account_id,
                status=ReconciliationStatus.IN_PROGRESS.value,
                created_by_id=context.actor_id,
            )
            self._session.add(row)
        return row

    def _mark_payments_cleared(self, payment_ids: list[UUID], actor_id: UUID) -> None:
        if not payment_ids:
            return
        self._session.execute(
            update(PaymentModel)
            .where(PaymentModel.id.in_(payment_ids))
            .values(status=PaymentStatus.CLEARED.value, updated_by_id=actor_id)
            .execution_options(synchronize_session="fetch")
        )

    def _update_account_balance(
        self,
        bank_account_id: UUID,
        balance: Decimal,
        balance_date: date,
        actor_id: UUID,
    ) -> None:
        account = self._session.get(BankAccountModel, bank_account_id)
        account.current_balance = balance
        account.balance_date = balance_date
        account.updated_by_id = actor_id
        self._session.flush()

    def _require_statement(
        self, context: ReconciliationContext, statement_id: UUID | None,
    ) -> None:
        """A worksheet may only link a statement of the requesting company."""
        if statement_id is None:
            return
        if self._selector.get_statement(context.company_id, statement_id) is None:
            logger.warning(
                "statement_link_rejected",
                extra={"bank_statement_id": str(statement_id)},
            )
            raise StatementNotFoundError(str(statement_id))

    def _stamp_statement(
        self,
        company_id: UUID,
        statement_id: UUID,
        ending_date: date,
        actor_id: UUID,
    ) -> None:
        statement = self._session.execute(
            select(BankStatementModel).where(
                BankStatementModel.id == statement_id,
                BankStatementModel.company_id == company_id,
            )
        ).scalar_one()
        statement.statement_date = ending_date
        statement.statement_month = ending_date.month
        statement.statement_year = ending_date.year
        statement.updated_by_id = actor_id
        self._session.flush()

    # =========================================================================
    # Statements
    # =========================================================================

    def _require_storage(self) -> ObjectStorage:
        if self._storage is None:
            raise ConfigurationError("storage", "no object storage configured")
        return self._storage

    def attach_statement(
        self,
        context: ReconciliationContext,
        worksheet: ReconciliationWorksheet,
        file_name: str,
        content: bytes,
        display_name: str | None = None,
    ) -> ReconciliationWorksheet:
        """
        Upload a statement file and attach it to the worksheet.

        The object is stored first; if the row insert then fails the object
        is left orphaned in storage and ReconciliationPersistenceError is
        raised.
        """
        storage = self._require_storage()
        with self._log_context(
            context, worksheet.bank_account_id, worksheet.reconciliation_id,
        ):
            account = self._require_bank_account(context, worksheet.bank_account_id)
            key = statement_key(context.company_id, account.id, file_name)
            storage.upload(key, content)

            try:
                row = BankStatementModel(
                    company_id=context.company_id,
                    bank_account_id=account.id,
                    file_name=file_name,
                    storage_key=key,
                    display_name=display_name or file_name,
                    uploaded_by_id=context.actor_id,
                    uploaded_at=self._clock.now(),
                    created_by_id=context.actor_id,
                )
                self._session.add(row)
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error(
                    "statement_attach_failed",
                    extra={"storage_key": key, "reason": str(exc)},
                    exc_info=True,
                )
                raise ReconciliationPersistenceError(
                    "attach statement to", str(account.id), str(exc),
                ) from exc

            logger.info(
                "statement_attached",
                extra={"bank_statement_id": str(row.id), "storage_key": key},
            )
            return worksheet.evolve(bank_statement_id=row.id, warnings=())

    def statement_url(
        self,
        context: ReconciliationContext,
        statement_id: UUID,
        expires_in: int | None = None,
    ) -> str:
        """
        Signed URL for a stored statement, valid for ``expires_in`` seconds
        (default: the configured statement expiry).
        """
        storage = self._require_storage()
        statement = self._selector.get_statement(context.company_id, statement_id)
        if statement is None:
            raise StatementNotFoundError(str(statement_id))
        return storage.signed_url(
            statement.storage_key,
            expires_in if expires_in is not None else self._statement_expiry_seconds,
        )

    def get_reconciliation(
        self, context: ReconciliationContext, reconciliation_id: UUID,
    ) -> Reconciliation:
        recon = self._selector.get(context.company_id, reconciliation_id)
        if recon is None:
            raise ReconciliationNotFoundError(str(reconciliation_id))
        return recon
