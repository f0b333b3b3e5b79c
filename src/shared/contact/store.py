"""Record store for contact submissions.

The intake pipeline only needs ``create``; listing, read-flag updates and
deletion serve the admin dashboard pages.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.shared.contact.database import Contact
from src.shared.contact.errors import StoreError
from src.shared.contact.schemas import ContactRecord, ContactSubmission


class ContactStore:
    """Interface of the record store holding contact messages."""

    def create(self, submission: ContactSubmission) -> ContactRecord:
        raise NotImplementedError

    def list_contacts(
        self,
        read: Optional[bool] = None,
        order: str = "desc",
        limit: Optional[int] = None,
    ) -> List[ContactRecord]:
        raise NotImplementedError

    def mark_read(self, contact_id: str, read: bool = True) -> ContactRecord:
        raise NotImplementedError

    def delete(self, contact_id: str) -> None:
        raise NotImplementedError


class SqlAlchemyContactStore(ContactStore):
    """Contact store backed by the `contacts` table."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def create(self, submission: ContactSubmission) -> ContactRecord:
        """Insert one contact message. Either the whole row is written or nothing is."""
        db = self.session_factory()
        try:
            contact = Contact(
                name=submission.name,
                email=submission.email,
                subject=submission.subject,
                message=submission.message,
                user_id=submission.user_id,
            )
            db.add(contact)
            db.commit()
            db.refresh(contact)
            return ContactRecord.model_validate(contact)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Failed to insert contact: {str(e)}") from e
        finally:
            db.close()

    def list_contacts(
        self,
        read: Optional[bool] = None,
        order: str = "desc",
        limit: Optional[int] = None,
    ) -> List[ContactRecord]:
        """List contact messages by creation time, optionally filtered by read flag."""
        if order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")
        db = self.session_factory()
        try:
            query = db.query(Contact)
            if read is not None:
                query = query.filter(Contact.read == read)
            created = Contact.created_at.desc() if order == "desc" else Contact.created_at.asc()
            query = query.order_by(created)
            if limit is not None:
                query = query.limit(limit)
            return [ContactRecord.model_validate(contact) for contact in query.all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list contacts: {str(e)}") from e
        finally:
            db.close()

    def mark_read(self, contact_id: str, read: bool = True) -> ContactRecord:
        db = self.session_factory()
        try:
            contact = db.query(Contact).filter(Contact.id == contact_id).first()
            if contact is None:
                raise StoreError(f"Contact {contact_id} not found")
            contact.read = read
            db.commit()
            db.refresh(contact)
            return ContactRecord.model_validate(contact)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Failed to update contact {contact_id}: {str(e)}") from e
        finally:
            db.close()

    def delete(self, contact_id: str) -> None:
        db = self.session_factory()
        try:
            deleted = db.query(Contact).filter(Contact.id == contact_id).delete()
            db.commit()
            if not deleted:
                raise StoreError(f"Contact {contact_id} not found")
            logging.info(f"Deleted contact {contact_id}")
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Failed to delete contact {contact_id}: {str(e)}") from e
        finally:
            db.close()
