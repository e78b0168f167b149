"""
Ingestion coordinator.

Turns SMS into stored transactions without double counting. For each
message:

1. Extract (not a transaction -> optionally queue as pending SMS)
2. Reference-number duplicate check (strongest signal, short-circuits)
3. Fuzzy duplicate check: same sender and amount within the window
4. Account match (assigned only when the score clears the threshold)
5. Recurring correlation on the matched account:
   - a transaction for the template already exists near this date
     -> fold the SMS details into it (MERGED, balance untouched)
   - otherwise insert it tagged with the template and advance the
     template's due date
6. Default insert with an inferred category

Account matching runs first; steps 2, 3, 5 and 6 then run inside one store
transaction. The store lock is held for its whole span, so two copies of a
message processed at once cannot both pass the duplicate checks, and a failed
balance update rolls back the insert.
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from smsledger.core.bank_directory import BankDirectory
from smsledger.core.config import IngestionConfig
from smsledger.core.exceptions import AccountNotFoundError, PersistenceConflictError
from smsledger.core.models import LinkedAccount, SmsMessage, StoredTransaction
from smsledger.core.store import SqliteLedgerStore
from smsledger.parsers.sms.extractor import TransactionExtractor, is_excluded, looks_financial
from smsledger.parsers.sms.models import ParsedTransaction
from smsledger.services.account_matching import AccountMatcher, has_linked_sender

from .category_rules import CategoryClassifier
from .models import DecisionType, IngestionDecision, IngestionResult

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def build_note(parsed: ParsedTransaction, account_matched: bool) -> str:
    """
    Human-readable note for an SMS-created transaction.

    "[Auto] SWIGGY via HDFC Bank (****1234)"
    """
    parts = ["[Auto] " if account_matched else "[SMS] "]
    if parsed.merchant_name and parsed.merchant_name.strip():
        parts.append(parsed.merchant_name)
    else:
        parts.append("Payment" if parsed.is_debit else "Received")
    if parsed.bank_name:
        parts.append(f" via {parsed.bank_name}")
    if parsed.account_hint:
        parts.append(f" (****{parsed.account_hint})")
    return "".join(parts)


class IngestionCoordinator:
    """
    Deduplicating SMS ingester.

    Usage:
        with SqliteLedgerStore("ledger.db") as store:
            coordinator = IngestionCoordinator(store)
            result = coordinator.process_batch(messages)
            print(result)
    """

    def __init__(
        self,
        store: SqliteLedgerStore,
        config: Optional[IngestionConfig] = None,
        directory: Optional[BankDirectory] = None,
        extractor: Optional[TransactionExtractor] = None,
        matcher: Optional[AccountMatcher] = None,
        classifier: Optional[CategoryClassifier] = None,
    ):
        self.store = store
        self.config = config or IngestionConfig()
        self.directory = directory or BankDirectory.default()
        self.extractor = extractor or TransactionExtractor(self.directory, self.config.merchant_max_chars)
        self.matcher = matcher or AccountMatcher(self.directory)
        self.classifier = classifier or CategoryClassifier(self.config.category_overrides)

        self.store.ensure_categories(self.classifier.default_categories())

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process_message(self, message: SmsMessage) -> IngestionDecision:
        """Run one raw SMS through the full pipeline."""
        sender = message.sender_id
        accounts = self.store.get_accounts()

        if self.config.linked_senders_only and not has_linked_sender(accounts, sender):
            logger.debug(f"Skipping {sender}: not linked to any account")
            return IngestionDecision(
                DecisionType.SKIPPED, sender, message.timestamp, reason="Sender not linked"
            )

        parsed = self.extractor.extract(message.body, sender)
        if parsed is None:
            pending = self._save_pending(message)
            return IngestionDecision(
                DecisionType.NOT_A_TRANSACTION, sender, message.timestamp,
                reason="Saved as pending" if pending else "Not a transaction",
                pending_saved=pending,
            )

        return self._ingest(parsed, sender, message.timestamp, accounts)

    def ingest_parsed(self, parsed: ParsedTransaction, sender_id: str, timestamp: int) -> IngestionDecision:
        """
        Ingest a transaction parsed elsewhere (e.g. a fallback parser working
        on pending SMS). The same duplicate and recurring checks apply.
        """
        return self._ingest(parsed, sender_id, timestamp, self.store.get_accounts())

    def process_batch(self, messages: Iterable[SmsMessage]) -> IngestionResult:
        """
        Process messages oldest first.

        Store conflicts are recorded per message and never abort the batch.
        """
        ordered = sorted(messages, key=lambda m: m.timestamp)
        result = IngestionResult(success=True)

        for message in ordered:
            result.record(self.process_message(message))

        result.success = not result.errors
        logger.info(f"SMS batch: {result}")
        if result.pending_saved:
            logger.info(f"{result.pending_saved} SMS saved as pending")
        return result

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _save_pending(self, message: SmsMessage) -> bool:
        if not self.config.save_pending_on_failure:
            return False
        if is_excluded(message.body) or not looks_financial(message.body, message.sender_id):
            return False
        try:
            return self.store.save_pending_sms(message.sender_id, message.body, message.timestamp)
        except PersistenceConflictError as e:
            logger.warning(f"Could not save pending SMS from {message.sender_id}: {e}")
            return False

    def _ingest(
        self,
        parsed: ParsedTransaction,
        sender: str,
        timestamp: int,
        accounts: List[LinkedAccount],
    ) -> IngestionDecision:
        match = self.matcher.find_matching_account(parsed, sender, accounts)
        account_id = None
        if match.matched_account is not None and match.best_score >= self.config.min_assign_score:
            account_id = match.matched_account_id

        try:
            with self.store.transaction():
                return self._store_unique(parsed, sender, timestamp, account_id)
        except (PersistenceConflictError, AccountNotFoundError) as e:
            logger.exception(f"Failed to store SMS transaction from {sender}")
            return IngestionDecision(
                DecisionType.FAILED, sender, timestamp, parsed=parsed,
                account_id=account_id, reason=e.message,
            )

    def _store_unique(
        self,
        parsed: ParsedTransaction,
        sender: str,
        timestamp: int,
        account_id: Optional[str],
    ) -> IngestionDecision:
        """Duplicate checks and the write; the caller holds the store transaction."""
        if parsed.reference_number:
            existing = self.store.find_by_reference_number(parsed.reference_number)
            if existing is not None:
                logger.debug(f"Duplicate by reference {parsed.reference_number}")
                return IngestionDecision(
                    DecisionType.DUPLICATE, sender, timestamp, parsed=parsed,
                    transaction=existing, reason=f"Reference {parsed.reference_number} already stored",
                )

        window = self.config.duplicate_window_millis
        duplicates = self.store.find_potential_duplicates(
            sender, parsed.amount, timestamp - window, timestamp + window
        )
        if duplicates:
            logger.debug(f"Duplicate by sender/amount/time: {sender} {parsed.amount}")
            return IngestionDecision(
                DecisionType.DUPLICATE, sender, timestamp, parsed=parsed,
                transaction=duplicates[0], reason="Same sender and amount within window",
            )

        if account_id is None:
            return self._insert(parsed, sender, timestamp, None)
        return self._ingest_for_account(parsed, sender, timestamp, account_id)

    def _ingest_for_account(
        self,
        parsed: ParsedTransaction,
        sender: str,
        timestamp: int,
        account_id: str,
    ) -> IngestionDecision:
        template = self.store.find_matching_recurring(
            account_id,
            parsed.amount,
            parsed.transaction_type,
            timestamp,
            self.config.recurring_amount_tolerance,
            self.config.recurring_window_millis,
        )
        if template is None:
            return self._insert(parsed, sender, timestamp, account_id)

        window = self.config.recurring_window_millis
        existing = self.store.find_recurring_transaction(
            template.template_id, timestamp - window, timestamp + window
        )
        if existing is not None:
            self.store.update_transaction_with_sms_details(
                existing.transaction_id,
                sms_sender=sender,
                original_sms=parsed.original_message,
                ref_number=parsed.reference_number,
                upi_id=parsed.upi_id,
                merchant_name=parsed.merchant_name,
                sender_name=parsed.sender_name,
                receiver_name=parsed.receiver_name,
            )
            logger.debug(f"Merged SMS into recurring transaction {existing.transaction_id}")
            return IngestionDecision(
                DecisionType.MERGED, sender, timestamp, parsed=parsed,
                transaction=self.store.get_transaction(existing.transaction_id),
                account_id=account_id, recurring_id=template.template_id,
                reason=f"Matched recurring '{template.name}'",
            )

        decision = self._insert(
            parsed, sender, timestamp, account_id,
            recurring_id=template.template_id,
            fallback_category=template.category_id,
        )
        self.store.update_recurring_due_date(
            template.template_id, template.frequency.advance(template.next_due_date), timestamp
        )
        return decision

    def _insert(
        self,
        parsed: ParsedTransaction,
        sender: str,
        timestamp: int,
        account_id: Optional[str],
        recurring_id: Optional[str] = None,
        fallback_category: Optional[str] = None,
    ) -> IngestionDecision:
        txn = StoredTransaction(
            amount=parsed.amount,
            transaction_type=parsed.transaction_type,
            date=timestamp,
            category_id=self.classifier.infer(parsed.merchant_name, fallback_category),
            account_id=account_id,
            note=build_note(parsed, account_id is not None),
            is_recurring=recurring_id is not None,
            recurring_id=recurring_id,
            sms_sender=sender,
            merchant_name=parsed.merchant_name,
            ref_number=parsed.reference_number,
            upi_id=parsed.upi_id,
            sender_name=parsed.sender_name,
            receiver_name=parsed.receiver_name,
            original_sms=parsed.original_message,
        )
        delta = parsed.signed_amount if account_id is not None else ZERO

        self.store.insert_transaction(txn)
        if account_id is not None:
            self.store.update_balance(account_id, delta)

        logger.debug(f"Inserted {txn.transaction_type.value} {txn.amount} from {sender} ({txn.note})")
        return IngestionDecision(
            DecisionType.INSERTED, sender, timestamp, parsed=parsed, transaction=txn,
            account_id=account_id, balance_delta=delta, recurring_id=recurring_id,
            reason=f"Recurring '{recurring_id}'" if recurring_id else "New transaction",
        )
