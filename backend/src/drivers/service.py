"""Driver service: creation under the plan's driver limit and compliance overviews."""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from domain.compliance.scorer import (
    compliance_score,
    compliance_tier,
    driver_compliance_status,
    type_column_statuses,
)
from domain.documents.document_status import days_until_expiry, effective_status
from domain.documents.reminders import reminder_window_days
from domain.documents.validation import UNLIMITED, get_plan_limit
from domain.errors import DriverLimitReachedError, DuplicateError, NotFoundError
from models.company import Company
from models.driver import Driver
from observability.metrics import driver_limit_reached_total, drivers_created_total
from .schemas import DriverCreate

logger = logging.getLogger(__name__)


class DriverService:
    """Company-scoped driver operations"""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def _company(self) -> Company:
        company = self.db.get(Company, self.company_id)
        if company is None:
            raise NotFoundError(f"Company {self.company_id} not found")
        return company

    def create_driver(self, data: DriverCreate) -> Driver:
        """
        Create a driver if the plan's max_drivers allows one more.

        Raises:
            DriverLimitReachedError: Company already has max_drivers drivers
            DuplicateError: employeeId already used in this company
        """
        company = self._company()
        limit = get_plan_limit(company.settings_json, "max_drivers")
        if limit != UNLIMITED:
            current = self.db.execute(
                select(func.count(Driver.id)).where(Driver.company_id == self.company_id)
            ).scalar_one()
            if current >= limit:
                driver_limit_reached_total.inc()
                plural = "s" if limit != 1 else ""
                raise DriverLimitReachedError(
                    f"Your plan allows only {limit} driver{plural}. "
                    f"Please upgrade to add more drivers.",
                    details={"limit": limit, "current": current},
                )

        driver = Driver(
            company_id=self.company_id,
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone=data.phone,
            location=data.location,
            employee_id=data.employee_id,
        )
        self.db.add(driver)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(f"A driver with employee ID '{data.employee_id}' already exists")
        self.db.refresh(driver)

        drivers_created_total.inc()
        logger.info(f"Driver created: company_id={self.company_id}, driver_id={driver.id}")
        return driver

    def get_driver(self, driver_id: UUID) -> Driver:
        driver = self.db.execute(
            select(Driver)
            .where(Driver.id == driver_id, Driver.company_id == self.company_id)
            .options(selectinload(Driver.documents))
        ).scalar_one_or_none()
        if driver is None:
            raise NotFoundError(f"Driver {driver_id} not found")
        return driver

    def delete_driver(self, driver_id: UUID) -> list[str]:
        """Delete a driver and its documents.

        Returns:
            Storage keys of the deleted documents (objects are removed by the caller)
        """
        driver = self.get_driver(driver_id)
        keys = [doc.storage_key for doc in driver.documents]
        self.db.delete(driver)
        self.db.commit()
        logger.info(
            f"Driver deleted: company_id={self.company_id}, driver_id={driver_id}, documents={len(keys)}"
        )
        return keys

    def summarize(
        self,
        driver: Driver,
        required_types: list[str],
        today: date,
        window: Optional[int],
        include_documents: bool = False,
    ) -> dict:
        """Driver row with score, tier, overall status and per-type columns"""
        documents = list(driver.documents)
        score = compliance_score(documents, required_types)
        columns = type_column_statuses(documents, required_types, today, window)
        data = {
            "id": str(driver.id),
            "firstName": driver.first_name,
            "lastName": driver.last_name,
            "name": driver.name,
            "email": driver.email,
            "phone": driver.phone,
            "location": driver.location,
            "employeeId": driver.employee_id,
            "createdAt": driver.created_at.isoformat() if driver.created_at else None,
            "complianceScore": score,
            "complianceTier": compliance_tier(score),
            "complianceStatus": driver_compliance_status(documents, today, window),
            "documentCount": len(documents),
            "documentStatuses": {name: status.value for name, status in columns.items()},
        }
        if include_documents:
            rows = []
            for doc in documents:
                row = doc.to_dict()
                status = effective_status(doc, today, window)
                row["effectiveStatus"] = status.value
                row["statusLabel"] = status.label
                row["daysUntilExpiry"] = days_until_expiry(doc.expiry_date, today)
                rows.append(row)
            data["documents"] = rows
        return data

    def list_drivers(self, today: date) -> list[dict]:
        company = self._company()
        required = company.required_document_type_names
        window = reminder_window_days(company.settings_json)
        drivers = self.db.execute(
            select(Driver)
            .where(Driver.company_id == self.company_id)
            .options(selectinload(Driver.documents))
            .order_by(Driver.last_name, Driver.first_name)
        ).scalars().all()
        return [self.summarize(d, required, today, window) for d in drivers]

    def driver_detail(self, driver_id: UUID, today: date) -> dict:
        company = self._company()
        driver = self.get_driver(driver_id)
        return self.summarize(
            driver,
            company.required_document_type_names,
            today,
            reminder_window_days(company.settings_json),
            include_documents=True,
        )
