from typing import Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.tenant import Tenant
import logging


logger = logging.getLogger(__name__)


class CRUDTenant(CRUDBase[Tenant, dict, dict]):
    def get_by_slug(self, db: Session, *, slug: str) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.slug == slug).first()

    def set_manager(self, db: Session, *, tenant_id: int, manager_id: int) -> Optional[Tenant]:
        tenant = self.get(db, tenant_id)
        if tenant is None:
            logger.warning(f"Tenant {tenant_id} not found while linking manager {manager_id}")
            return None
        return self.update(db, db_obj=tenant, obj_in={"manager_id": manager_id})


tenant = CRUDTenant(Tenant)
