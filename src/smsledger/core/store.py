"""
SQLite ledger store.

Keyed storage for accounts, categories, recurring templates, transactions,
discovered banks and pending SMS. Amounts are stored as TEXT with two
decimal places so that equality lookups are exact.

Thread Safety Notes:
- Uses check_same_thread=False for multi-threaded access
- A re-entrant lock serializes all use of the single connection
- Use the transaction() context manager to make several writes atomic
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Union

from smsledger.core.bank_directory import DEFAULT_ACCOUNT_COLOR
from smsledger.core.exceptions import AccountNotFoundError, PersistenceConflictError, SmsLedgerError
from smsledger.core.models import (
    AccountType,
    LinkedAccount,
    RecurringFrequency,
    RecurringTemplate,
    StoredTransaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    account_type TEXT NOT NULL CHECK(account_type IN ('CASH','BANK','UPI','CREDIT_CARD','WALLET','OTHER')),
    balance TEXT NOT NULL DEFAULT '0.00',
    color INTEGER,
    bank_code TEXT,
    account_number TEXT,
    linked_sender_ids TEXT,
    is_linked BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS recurring_expenses (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    amount TEXT NOT NULL,
    txn_type TEXT NOT NULL CHECK(txn_type IN ('EXPENSE', 'INCOME')),
    frequency TEXT NOT NULL,
    next_due_date INTEGER NOT NULL,
    last_processed_date INTEGER,
    account_id TEXT,
    category_id TEXT,
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (account_id) REFERENCES accounts(id) ON DELETE SET NULL,
    FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_recurring_account ON recurring_expenses(account_id, next_due_date);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    amount TEXT NOT NULL,
    txn_type TEXT NOT NULL CHECK(txn_type IN ('EXPENSE', 'INCOME')),
    date INTEGER NOT NULL,
    category_id TEXT,
    account_id TEXT,
    note TEXT,
    is_recurring BOOLEAN DEFAULT FALSE,
    recurring_id TEXT,
    sms_sender TEXT,
    merchant_name TEXT,
    ref_number TEXT,
    upi_id TEXT,
    sender_name TEXT,
    receiver_name TEXT,
    original_sms TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE RESTRICT,
    FOREIGN KEY (account_id) REFERENCES accounts(id) ON DELETE RESTRICT,
    FOREIGN KEY (recurring_id) REFERENCES recurring_expenses(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_txn_ref ON transactions(ref_number);
CREATE INDEX IF NOT EXISTS idx_txn_sender_date ON transactions(sms_sender, date);
CREATE INDEX IF NOT EXISTS idx_txn_recurring ON transactions(recurring_id, date);

CREATE TABLE IF NOT EXISTS available_banks (
    id TEXT PRIMARY KEY,
    bank_name TEXT NOT NULL,
    bank_code TEXT,
    sender_ids TEXT NOT NULL,
    color INTEGER,
    transaction_count INTEGER DEFAULT 0,
    last_transaction_date INTEGER,
    sample_sms TEXT,
    is_known_bank BOOLEAN DEFAULT FALSE,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS pending_sms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sender_id TEXT NOT NULL,
    body TEXT NOT NULL,
    received_at INTEGER NOT NULL,
    is_processed BOOLEAN DEFAULT FALSE,
    processed_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(sender_id, body, received_at)
);
"""


def _amount_text(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(TWO_PLACES))


class SqliteLedgerStore:
    """
    SQLite-backed store used by the ingestion coordinator.

    Usage:
        with SqliteLedgerStore("ledger.db") as store:
            store.add_account(account)
            store.insert_transaction(txn)
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """
        Initialize store.

        Args:
            db_path: Path to database file or ":memory:" for an in-memory store
        """
        self.db_path = str(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._in_transaction = False

    def connect(self) -> "SqliteLedgerStore":
        """Open the connection and create tables if needed."""
        if self.conn is not None:
            return self
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self.conn.execute("PRAGMA journal_mode = WAL")
            self.conn.executescript(SCHEMA_SQL)
            self.conn.commit()
        except sqlite3.Error as e:
            raise SmsLedgerError(f"Failed to initialize store {self.db_path}: {e}", "STORE_INIT")
        logger.debug(f"Opened ledger store {self.db_path}")
        return self

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "SqliteLedgerStore":
        """Context manager entry."""
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise SmsLedgerError("Store not connected. Call connect() first.", "STORE_CLOSED")
        return self.conn

    @contextmanager
    def transaction(self):
        """
        Make several writes atomic.

        Usage:
            with store.transaction():
                store.insert_transaction(txn)
                store.update_balance(account_id, delta)
            # Commits on success, rolls back on exception
        """
        with self._lock:
            if self._in_transaction:
                yield self
                return
            self._in_transaction = True
            try:
                yield self
                self.connection.commit()
            except Exception:
                self.connection.rollback()
                raise
            finally:
                self._in_transaction = False

    def _write(self, sql: str, params: tuple, table: str) -> sqlite3.Cursor:
        with self._lock:
            try:
                cursor = self.connection.execute(sql, params)
            except sqlite3.IntegrityError as e:
                if not self._in_transaction:
                    self.connection.rollback()
                raise PersistenceConflictError(f"Write to {table} rejected: {e}", table=table) from e
            if not self._in_transaction:
                self.connection.commit()
            return cursor

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self.connection.execute(sql, params).fetchall()

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def add_account(self, account: LinkedAccount) -> LinkedAccount:
        self._write(
            """
            INSERT INTO accounts (id, name, account_type, balance, color, bank_code,
                                  account_number, linked_sender_ids, is_linked)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account.account_id, account.name, account.account_type.value,
                _amount_text(account.balance), account.color, account.bank_code,
                account.account_number_last4, account.sender_ids_csv or None, account.is_linked,
            ),
            "accounts",
        )
        return account

    def get_accounts(self) -> List[LinkedAccount]:
        rows = self._query("SELECT * FROM accounts ORDER BY created_at, rowid")
        return [self._row_to_account(row) for row in rows]

    def get_linked_accounts(self) -> List[LinkedAccount]:
        rows = self._query("SELECT * FROM accounts WHERE is_linked = 1 ORDER BY created_at, rowid")
        return [self._row_to_account(row) for row in rows]

    def get_account(self, account_id: str) -> Optional[LinkedAccount]:
        rows = self._query("SELECT * FROM accounts WHERE id = ?", (account_id,))
        return self._row_to_account(rows[0]) if rows else None

    def update_balance(self, account_id: str, delta: Decimal) -> Decimal:
        """Add a signed delta to the account balance; returns the new balance."""
        with self._lock:
            account = self.get_account(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
            new_balance = (account.balance + Decimal(delta)).quantize(TWO_PLACES)
            self._write(
                "UPDATE accounts SET balance = ? WHERE id = ?",
                (str(new_balance), account_id),
                "accounts",
            )
            return new_balance

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> LinkedAccount:
        return LinkedAccount(
            account_id=row["id"],
            name=row["name"],
            is_linked=bool(row["is_linked"]),
            bank_code=row["bank_code"],
            account_number_last4=row["account_number"],
            linked_sender_ids=row["linked_sender_ids"] or "",
            account_type=AccountType(row["account_type"]),
            balance=Decimal(row["balance"]),
            color=row["color"] if row["color"] is not None else DEFAULT_ACCOUNT_COLOR,
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def add_category(self, category_id: str, name: str) -> None:
        """Create a category; existing ids are left untouched."""
        self._write(
            "INSERT OR IGNORE INTO categories (id, name) VALUES (?, ?)",
            (category_id, name),
            "categories",
        )

    def ensure_categories(self, categories: Dict[str, str]) -> None:
        with self.transaction():
            for category_id, name in categories.items():
                self.add_category(category_id, name)

    def get_categories(self) -> Dict[str, str]:
        return {row["id"]: row["name"] for row in self._query("SELECT id, name FROM categories")}

    # ------------------------------------------------------------------
    # Recurring templates
    # ------------------------------------------------------------------

    def add_recurring(self, template: RecurringTemplate) -> RecurringTemplate:
        self._write(
            """
            INSERT INTO recurring_expenses (id, name, amount, txn_type, frequency, next_due_date,
                                            last_processed_date, account_id, category_id, is_active)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                template.template_id, template.name, _amount_text(template.amount),
                template.transaction_type.value, template.frequency.value,
                template.next_due_date, template.last_processed_date,
                template.account_id, template.category_id, template.is_active,
            ),
            "recurring_expenses",
        )
        return template

    def get_recurring(self, template_id: str) -> Optional[RecurringTemplate]:
        rows = self._query("SELECT * FROM recurring_expenses WHERE id = ?", (template_id,))
        return self._row_to_recurring(rows[0]) if rows else None

    def find_matching_recurring(
        self,
        account_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        timestamp: int,
        amount_tolerance: Decimal,
        window_millis: int,
    ) -> Optional[RecurringTemplate]:
        """
        Active template on this account, of this type, with an amount within
        tolerance and a due date within the window around the timestamp.
        Earliest due date wins.
        """
        rows = self._query(
            """
            SELECT * FROM recurring_expenses
            WHERE account_id = ? AND is_active = 1 AND txn_type = ?
              AND next_due_date BETWEEN ? AND ?
            ORDER BY next_due_date, rowid
            """,
            (account_id, transaction_type.value, timestamp - window_millis, timestamp + window_millis),
        )
        for row in rows:
            template = self._row_to_recurring(row)
            if abs(template.amount - amount) <= amount_tolerance:
                return template
        return None

    def update_recurring_due_date(self, template_id: str, next_due_date: int, processed_date: int) -> None:
        self._write(
            "UPDATE recurring_expenses SET next_due_date = ?, last_processed_date = ? WHERE id = ?",
            (next_due_date, processed_date, template_id),
            "recurring_expenses",
        )

    @staticmethod
    def _row_to_recurring(row: sqlite3.Row) -> RecurringTemplate:
        return RecurringTemplate(
            template_id=row["id"],
            name=row["name"],
            amount=Decimal(row["amount"]),
            transaction_type=TransactionType(row["txn_type"]),
            next_due_date=row["next_due_date"],
            account_id=row["account_id"],
            frequency=RecurringFrequency(row["frequency"]),
            category_id=row["category_id"],
            is_active=bool(row["is_active"]),
            last_processed_date=row["last_processed_date"],
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def insert_transaction(self, txn: StoredTransaction) -> StoredTransaction:
        self._write(
            """
            INSERT INTO transactions (id, amount, txn_type, date, category_id, account_id, note,
                                      is_recurring, recurring_id, sms_sender, merchant_name,
                                      ref_number, upi_id, sender_name, receiver_name, original_sms)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                txn.transaction_id, _amount_text(txn.amount), txn.transaction_type.value, txn.date,
                txn.category_id, txn.account_id, txn.note, txn.is_recurring, txn.recurring_id,
                txn.sms_sender, txn.merchant_name, txn.ref_number, txn.upi_id,
                txn.sender_name, txn.receiver_name, txn.original_sms,
            ),
            "transactions",
        )
        return txn

    def get_transaction(self, transaction_id: str) -> Optional[StoredTransaction]:
        rows = self._query("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        return self._row_to_transaction(rows[0]) if rows else None

    def find_by_reference_number(self, ref_number: str) -> Optional[StoredTransaction]:
        if not ref_number:
            return None
        rows = self._query("SELECT * FROM transactions WHERE ref_number = ? LIMIT 1", (ref_number,))
        return self._row_to_transaction(rows[0]) if rows else None

    def find_potential_duplicates(
        self,
        sender: str,
        amount: Decimal,
        start_time: int,
        end_time: int,
    ) -> List[StoredTransaction]:
        """Transactions from the same sender with the same amount in [start, end]."""
        rows = self._query(
            """
            SELECT * FROM transactions
            WHERE sms_sender = ? AND amount = ? AND date BETWEEN ? AND ?
            ORDER BY date
            """,
            (sender, _amount_text(amount), start_time, end_time),
        )
        return [self._row_to_transaction(row) for row in rows]

    def find_recurring_transaction(
        self,
        recurring_id: str,
        start_time: int,
        end_time: int,
    ) -> Optional[StoredTransaction]:
        rows = self._query(
            """
            SELECT * FROM transactions
            WHERE recurring_id = ? AND date BETWEEN ? AND ?
            ORDER BY date LIMIT 1
            """,
            (recurring_id, start_time, end_time),
        )
        return self._row_to_transaction(rows[0]) if rows else None

    def update_transaction_with_sms_details(
        self,
        transaction_id: str,
        sms_sender: Optional[str],
        original_sms: Optional[str],
        ref_number: Optional[str],
        upi_id: Optional[str],
        merchant_name: Optional[str],
        sender_name: Optional[str],
        receiver_name: Optional[str],
    ) -> None:
        """Attach SMS metadata to an existing transaction; amount and balance are untouched."""
        self._write(
            """
            UPDATE transactions
            SET sms_sender = ?, original_sms = ?, ref_number = COALESCE(?, ref_number),
                upi_id = COALESCE(?, upi_id), merchant_name = COALESCE(?, merchant_name),
                sender_name = COALESCE(?, sender_name), receiver_name = COALESCE(?, receiver_name),
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (sms_sender, original_sms, ref_number, upi_id, merchant_name,
             sender_name, receiver_name, transaction_id),
            "transactions",
        )

    def count_transactions(self, account_id: Optional[str] = None) -> int:
        if account_id is None:
            rows = self._query("SELECT COUNT(*) FROM transactions")
        else:
            rows = self._query("SELECT COUNT(*) FROM transactions WHERE account_id = ?", (account_id,))
        return rows[0][0]

    @staticmethod
    def _row_to_transaction(row: sqlite3.Row) -> StoredTransaction:
        return StoredTransaction(
            transaction_id=row["id"],
            amount=Decimal(row["amount"]),
            transaction_type=TransactionType(row["txn_type"]),
            date=row["date"],
            category_id=row["category_id"],
            account_id=row["account_id"],
            note=row["note"],
            is_recurring=bool(row["is_recurring"]),
            recurring_id=row["recurring_id"],
            sms_sender=row["sms_sender"],
            merchant_name=row["merchant_name"],
            ref_number=row["ref_number"],
            upi_id=row["upi_id"],
            sender_name=row["sender_name"],
            receiver_name=row["receiver_name"],
            original_sms=row["original_sms"],
        )

    # ------------------------------------------------------------------
    # Pending SMS
    # ------------------------------------------------------------------

    def save_pending_sms(self, sender_id: str, body: str, received_at: int) -> bool:
        """Queue an unparsed SMS for a later parser; False if already queued."""
        cursor = self._write(
            "INSERT OR IGNORE INTO pending_sms (sender_id, body, received_at) VALUES (?, ?, ?)",
            (sender_id, body, received_at),
            "pending_sms",
        )
        return cursor.rowcount > 0

    def get_pending_sms(self, include_processed: bool = False) -> List[Dict[str, object]]:
        """Queued SMS, oldest first; processed entries only when asked for."""
        sql = "SELECT id, sender_id, body, received_at, is_processed FROM pending_sms"
        if not include_processed:
            sql += " WHERE is_processed = 0"
        rows = self._query(sql + " ORDER BY received_at, id")
        result = []
        for row in rows:
            record = dict(row)
            record["is_processed"] = bool(row["is_processed"])
            result.append(record)
        return result

    def mark_pending_processed(self, pending_id: int) -> bool:
        """Take an SMS off the pending queue; False if it was not queued."""
        cursor = self._write(
            """
            UPDATE pending_sms SET is_processed = 1, processed_at = CURRENT_TIMESTAMP
            WHERE id = ? AND is_processed = 0
            """,
            (pending_id,),
            "pending_sms",
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Discovered banks
    # ------------------------------------------------------------------

    def save_discovered_banks(self, result) -> int:
        """
        Upsert discovered banks.

        Rows are keyed on bank code (unknown senders on the first 10
        characters of their uppercased sender ID). Sender IDs are unioned,
        counts and last dates keep the maximum, and the newer sample wins
        when present.
        """
        banks = getattr(result, "all_banks", result)
        saved = 0
        with self.transaction():
            for bank in banks:
                key = bank.bank_code or bank.primary_sender_id.upper()[:10]
                rows = self._query("SELECT * FROM available_banks WHERE id = ?", (key,))
                if rows:
                    existing = rows[0]
                    sender_ids = set(existing["sender_ids"].split(",")) | set(bank.sender_ids)
                    self._write(
                        """
                        UPDATE available_banks
                        SET sender_ids = ?, transaction_count = ?, last_transaction_date = ?,
                            sample_sms = ?, updated_at = CURRENT_TIMESTAMP
                        WHERE id = ?
                        """,
                        (
                            ",".join(sorted(s for s in sender_ids if s)),
                            max(existing["transaction_count"] or 0, bank.transaction_count),
                            max(existing["last_transaction_date"] or 0, bank.last_transaction_timestamp),
                            bank.sample_message or existing["sample_sms"],
                            key,
                        ),
                        "available_banks",
                    )
                else:
                    self._write(
                        """
                        INSERT INTO available_banks (id, bank_name, bank_code, sender_ids, color,
                                                     transaction_count, last_transaction_date,
                                                     sample_sms, is_known_bank)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            key, bank.bank_name, bank.bank_code, ",".join(sorted(bank.sender_ids)),
                            bank.color, bank.transaction_count, bank.last_transaction_timestamp,
                            bank.sample_message, bank.is_known_bank,
                        ),
                        "available_banks",
                    )
                saved += 1
        logger.info(f"Saved {saved} discovered banks")
        return saved

    def get_available_banks(self) -> List[Dict[str, object]]:
        rows = self._query("SELECT * FROM available_banks ORDER BY transaction_count DESC, id")
        result = []
        for row in rows:
            record = dict(row)
            record["sender_ids"] = [s for s in (row["sender_ids"] or "").split(",") if s]
            record["is_known_bank"] = bool(row["is_known_bank"])
            result.append(record)
        return result
