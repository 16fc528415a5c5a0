# services/records.py
"""
Generic tenant-scoped repository used by the CRUD endpoints
"""

import logging
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from core.database_models import db

logger = logging.getLogger(__name__)


class TenantRepository:
    """
    CRUD access to one model, restricted to a single site key

    Args:
        model: Flask-SQLAlchemy model with a site_key column
        site_key: Tenant discriminator
        order_by: Column used for newest-first listing
    """

    def __init__(self, model, site_key: str, order_by=None):
        self.model = model
        self.site_key = site_key
        self.order_by = order_by if order_by is not None else model.id

    def _query(self):
        return self.model.query.filter_by(site_key=self.site_key)

    def _commit(self):
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.error(f"Commit failed for {self.model.__tablename__} (site {self.site_key})")
            raise

    def list(self) -> List[Any]:
        return self._query().order_by(self.order_by.desc(), self.model.id.desc()).all()

    def get(self, record_id: int) -> Optional[Any]:
        return self._query().filter_by(id=record_id).first()

    def first(self) -> Optional[Any]:
        return self._query().first()

    def count(self) -> int:
        return self._query().count()

    def create(self, values: Dict[str, Any]) -> Any:
        record = self.model(site_key=self.site_key, **values)
        db.session.add(record)
        self._commit()
        logger.info(f"Created {self.model.__tablename__} #{record.id} for site {self.site_key}")
        return record

    def update(self, record_id: int, values: Dict[str, Any]) -> Optional[Any]:
        record = self.get(record_id)
        if record is None:
            return None
        for key, value in values.items():
            setattr(record, key, value)
        self._commit()
        return record

    def delete(self, record_id: int) -> bool:
        """Delete a record; False when it does not exist for this tenant"""
        deleted = self._query().filter_by(id=record_id).delete()
        self._commit()
        if deleted:
            logger.info(f"Deleted {self.model.__tablename__} #{record_id} for site {self.site_key}")
        return bool(deleted)


def tenant_repository(model, order_by=None) -> TenantRepository:
    return TenantRepository(model, current_app.config['SITE_KEY'], order_by=order_by)
