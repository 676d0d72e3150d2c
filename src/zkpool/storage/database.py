"""SQLAlchemy-backed local store for deposit notes.

A note is the only durable record of a deposit, so the client keeps every
note it creates until it is spent. The encoded note can be encrypted at
rest with a Fernet key; commitments and nullifier hashes stay in the clear
so that notes can be looked up without decrypting.
"""

import enum
import logging
from datetime import datetime, UTC
from typing import List, Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer, LargeBinary, String, Text, create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from zkpool.core.commitment import compute_nullifier_hash
from zkpool.core.note import DepositNote, decode_note, encode_note
from zkpool.crypto.hasher import Hasher, get_hasher
from zkpool.exceptions import NoteNotFoundError, StorageError
from zkpool.utils.encoding import short_hex

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NoteStatus(str, enum.Enum):
    """Lifecycle of a stored note."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SPENT = "spent"


class NoteRecord(Base):
    """Stored deposit note."""
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True)
    commitment = Column(LargeBinary(32), unique=True, nullable=False, index=True)
    nullifier_hash = Column(LargeBinary(32), nullable=False, index=True)
    amount = Column(String(20), nullable=False)  # u64, as a decimal string
    encoded_note = Column(Text, nullable=False)
    encrypted = Column(Integer, default=0)  # Boolean as integer for SQLite compatibility
    status = Column(SQLEnum(NoteStatus), default=NoteStatus.PENDING, nullable=False)
    settlement_ref = Column(String(255), nullable=True)
    spend_ref = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<NoteRecord({self.commitment.hex()[:8]}... {self.status.value} {self.amount})>"


class NoteStore:
    """Manages the notes database and (optionally) note encryption."""

    def __init__(
        self,
        database_url: str = "sqlite:///zkpool_notes.db",
        hasher: Optional[Hasher] = None,
        encryption_key: Optional[str] = None,
    ):
        """
        Initialize note store.

        Args:
            database_url: SQLAlchemy database URL
            hasher: Hasher the stored notes use
            encryption_key: Fernet key; notes are stored in the clear when None
        """
        self.database_url = database_url
        self.hasher = hasher or get_hasher()
        self._fernet = Fernet(encryption_key) if encryption_key else None
        self.engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False} if "sqlite" in database_url else {}
        )
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self):
        """Create all tables in database."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self):
        """Drop all tables (for testing)."""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def _seal(self, encoded: str) -> str:
        if self._fernet is None:
            return encoded
        return self._fernet.encrypt(encoded.encode("utf-8")).decode("ascii")

    def _open(self, record: NoteRecord) -> DepositNote:
        encoded = record.encoded_note
        if record.encrypted:
            if self._fernet is None:
                raise StorageError("Note is encrypted and no encryption key is configured")
            try:
                encoded = self._fernet.decrypt(encoded.encode("ascii")).decode("utf-8")
            except InvalidToken as e:
                raise StorageError("Cannot decrypt note: wrong encryption key") from e
        return decode_note(encoded, self.hasher)

    def _get_record(self, session: Session, commitment: bytes) -> NoteRecord:
        record = session.query(NoteRecord).filter_by(commitment=commitment).first()
        if record is None:
            raise NoteNotFoundError(f"No stored note for commitment {commitment.hex()}")
        return record

    def save_note(self, note: DepositNote) -> NoteRecord:
        """
        Store a note. Notes with a settlement reference are stored as confirmed.

        Raises:
            StorageError: If a note with the same commitment is already stored
        """
        record = NoteRecord(
            commitment=note.commitment,
            nullifier_hash=compute_nullifier_hash(note.nullifier_secret, self.hasher),
            amount=str(note.amount),
            encoded_note=self._seal(encode_note(note, self.hasher)),
            encrypted=1 if self._fernet else 0,
            status=NoteStatus.CONFIRMED if note.settlement_ref else NoteStatus.PENDING,
            settlement_ref=note.settlement_ref,
        )
        with self.get_session() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise StorageError(f"Note {short_hex(note.commitment)} is already stored") from e
        logger.debug(f"Stored note {short_hex(note.commitment)} ({record.status.value})")
        return record

    def get_note(self, commitment: bytes) -> DepositNote:
        """Load a note by commitment."""
        with self.get_session() as session:
            return self._open(self._get_record(session, commitment))

    def get_status(self, commitment: bytes) -> NoteStatus:
        with self.get_session() as session:
            return self._get_record(session, commitment).status

    def attach_settlement(self, commitment: bytes, settlement_ref: str) -> DepositNote:
        """Record the deposit's settlement reference and mark the note confirmed."""
        with self.get_session() as session:
            record = self._get_record(session, commitment)
            note = self._open(record).with_settlement(settlement_ref)
            record.encoded_note = self._seal(encode_note(note, self.hasher))
            record.encrypted = 1 if self._fernet else 0
            record.settlement_ref = settlement_ref
            if record.status == NoteStatus.PENDING:
                record.status = NoteStatus.CONFIRMED
            session.commit()
        return note

    def mark_spent(self, commitment: bytes, spend_ref: Optional[str] = None) -> bool:
        """Mark a note spent. Returns False if it already was."""
        with self.get_session() as session:
            record = self._get_record(session, commitment)
            if record.status == NoteStatus.SPENT:
                return False
            record.status = NoteStatus.SPENT
            record.spend_ref = spend_ref
            session.commit()
        logger.debug(f"Marked note {short_hex(commitment)} spent")
        return True

    def list_unspent(self) -> List[DepositNote]:
        """Pending and confirmed notes, oldest first."""
        with self.get_session() as session:
            records = (
                session.query(NoteRecord)
                .filter(NoteRecord.status != NoteStatus.SPENT)
                .order_by(NoteRecord.id)
                .all()
            )
            return [self._open(record) for record in records]


# Default note store instance
_note_store: Optional[NoteStore] = None


def get_note_store(
    database_url: str = "sqlite:///zkpool_notes.db",
    encryption_key: Optional[str] = None,
    hasher: Optional[Hasher] = None,
) -> NoteStore:
    """Get or create default note store."""
    global _note_store
    if _note_store is None:
        _note_store = NoteStore(database_url, hasher, encryption_key)
        _note_store.create_tables()
    return _note_store


def reset_note_store():
    """Reset note store (for testing)."""
    global _note_store
    _note_store = None
