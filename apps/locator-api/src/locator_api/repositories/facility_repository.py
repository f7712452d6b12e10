from __future__ import annotations

import json
import logging
from typing import Protocol

from devkit.config import load_settings
from devkit.db import AsyncDatabaseManager, Base, create_all_tables, create_schema_if_not_exists, is_postgres_dsn
from pharmacy_engine.models import FacilityRecord
from sqlalchemy import Boolean, Float, String, Text, func, select
from sqlalchemy.orm import Mapped, mapped_column

logger = logging.getLogger(__name__)

_SETTINGS = load_settings("locator-api")
_DB_SCHEMA = "pharmacy" if (_SETTINGS.DATABASE_URL and is_postgres_dsn(_SETTINGS.DATABASE_URL)) else None


class FacilityRepositoryLike(Protocol):
    async def find_in_bounding_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        active_only: bool = True,
    ) -> list[FacilityRecord]: ...

    async def find_by_id(self, facility_id: str) -> FacilityRecord | None: ...


class FacilityORM(Base):
    __tablename__ = "pharmacies"
    __table_args__ = {"schema": _DB_SCHEMA} if _DB_SCHEMA else {}

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    city: Mapped[str | None] = mapped_column(String(128))
    state: Mapped[str | None] = mapped_column(String(64))
    zip_code: Mapped[str | None] = mapped_column(String(16))
    phone_number: Mapped[str | None] = mapped_column(String(32))
    website_url: Mapped[str | None] = mapped_column(String(500))
    lat: Mapped[float] = mapped_column(Float, index=True, nullable=False)
    lng: Mapped[float] = mapped_column(Float, index=True, nullable=False)
    operating_hours: Mapped[str | None] = mapped_column(Text)
    emergency_hours: Mapped[str | None] = mapped_column(Text)
    is_24_hours: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_delivery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_drive_through: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accepts_insurance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_consultation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    chain_name: Mapped[str | None] = mapped_column(String(128))
    rating: Mapped[float | None] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, index=True, nullable=False, default=True)
    services_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


SEED_FACILITIES: tuple[FacilityRecord, ...] = (
    FacilityRecord(
        id="ph-001",
        name="CVS Pharmacy - Broadway",
        address="253 Broadway",
        city="New York",
        state="NY",
        zip_code="10007",
        phone_number="212-555-0101",
        lat=40.7128,
        lng=-74.0060,
        operating_hours="Mon-Fri: 7AM-10PM, Sat-Sun: 9AM-9PM",
        is_24_hours=False,
        has_delivery=True,
        accepts_insurance=True,
        has_consultation=True,
        chain_name="CVS",
        rating=4.1,
        services=("Vaccinations", "Photo", "Prescription Delivery"),
    ),
    FacilityRecord(
        id="ph-002",
        name="Walgreens - Chambers St",
        address="145 Chambers St",
        city="New York",
        state="NY",
        zip_code="10007",
        phone_number="212-555-0102",
        lat=40.7155,
        lng=-74.0093,
        is_24_hours=True,
        has_drive_through=False,
        has_delivery=True,
        accepts_insurance=True,
        chain_name="Walgreens",
        rating=3.8,
        services=("Vaccinations", "Blood Pressure Screening"),
    ),
    FacilityRecord(
        id="ph-003",
        name="Duane Street Apothecary",
        address="80 Duane St",
        city="New York",
        state="NY",
        zip_code="10007",
        phone_number="212-555-0103",
        lat=40.7150,
        lng=-74.0050,
        operating_hours="Mon-Sat: 9AM-7PM",
        accepts_insurance=False,
        has_consultation=True,
        chain_name="Independent",
        rating=4.7,
        services=("Compounding",),
    ),
    FacilityRecord(
        id="ph-004",
        name="Rite Aid - Jersey City",
        address="30 Montgomery St",
        city="Jersey City",
        state="NJ",
        zip_code="07302",
        phone_number="201-555-0104",
        lat=40.7178,
        lng=-74.0431,
        operating_hours="Mon-Sun: 8AM-10PM",
        has_drive_through=True,
        accepts_insurance=True,
        chain_name="Rite Aid",
        rating=3.5,
        services=("Vaccinations", "Photo"),
    ),
    FacilityRecord(
        id="ph-005",
        name="Harlem Community Pharmacy",
        address="2100 Frederick Douglass Blvd",
        city="New York",
        state="NY",
        zip_code="10026",
        phone_number="212-555-0105",
        lat=40.8040,
        lng=-73.9550,
        operating_hours="Mon-Fri: 9AM-6PM",
        accepts_insurance=True,
        rating=None,
        is_active=False,
    ),
)


class FacilityRepository:
    """Facility store backed by seed data, or by SQLAlchemy when a DSN is given."""

    def __init__(
        self,
        database_url: str | None = None,
        seed: tuple[FacilityRecord, ...] | list[FacilityRecord] = SEED_FACILITIES,
    ) -> None:
        self._items: dict[str, FacilityRecord] = {item.id: item for item in seed}
        self._db = AsyncDatabaseManager(database_url) if database_url else None
        self._orm_ready = False

    async def find_in_bounding_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        active_only: bool = True,
    ) -> list[FacilityRecord]:
        if self._db is None:
            return [
                item
                for item in self._items.values()
                if min_lat <= item.lat <= max_lat
                and min_lng <= item.lng <= max_lng
                and (item.is_active or not active_only)
            ]

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = select(FacilityORM).where(
                FacilityORM.lat.between(min_lat, max_lat),
                FacilityORM.lng.between(min_lng, max_lng),
            )
            if active_only:
                stmt = stmt.where(FacilityORM.is_active.is_(True))
            rows = (await session.scalars(stmt.order_by(FacilityORM.id))).all()
            return [self._to_record(row) for row in rows]

        return await self._db.run_with_session(_run)

    async def find_by_id(self, facility_id: str) -> FacilityRecord | None:
        if self._db is None:
            return self._items.get(facility_id)

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(FacilityORM, facility_id)
            return self._to_record(row) if row else None

        return await self._db.run_with_session(_run)

    async def _ensure_orm_ready(self) -> None:
        if self._db is None or self._orm_ready:
            return

        await self._db.connect()
        if _DB_SCHEMA:
            await create_schema_if_not_exists(self._db.engine, _DB_SCHEMA)
        await create_all_tables(self._db.engine, Base.metadata)

        async def _seed_if_empty(session):
            count = int((await session.scalar(select(func.count()).select_from(FacilityORM))) or 0)
            if count > 0:
                return
            for item in self._items.values():
                session.add(self._to_row(item))
            logger.info("facility_seed_loaded", extra={"component": "locator_api", "count": len(self._items)})

        await self._db.run_with_session(_seed_if_empty)
        self._orm_ready = True

    @staticmethod
    def _to_row(item: FacilityRecord) -> FacilityORM:
        return FacilityORM(
            id=item.id,
            name=item.name,
            address=item.address,
            city=item.city,
            state=item.state,
            zip_code=item.zip_code,
            phone_number=item.phone_number,
            website_url=item.website_url,
            lat=item.lat,
            lng=item.lng,
            operating_hours=item.operating_hours,
            emergency_hours=item.emergency_hours,
            is_24_hours=item.is_24_hours,
            has_delivery=item.has_delivery,
            has_drive_through=item.has_drive_through,
            accepts_insurance=item.accepts_insurance,
            has_consultation=item.has_consultation,
            chain_name=item.chain_name,
            rating=item.rating,
            is_active=item.is_active,
            services_json=json.dumps(list(item.services), ensure_ascii=True),
        )

    @staticmethod
    def _to_record(row: FacilityORM) -> FacilityRecord:
        try:
            services = json.loads(row.services_json) if row.services_json else []
        except json.JSONDecodeError:
            services = []
        if not isinstance(services, list):
            services = []
        return FacilityRecord(
            id=row.id,
            name=row.name,
            address=row.address,
            city=row.city,
            state=row.state,
            zip_code=row.zip_code,
            phone_number=row.phone_number,
            website_url=row.website_url,
            lat=row.lat,
            lng=row.lng,
            operating_hours=row.operating_hours,
            emergency_hours=row.emergency_hours,
            is_24_hours=row.is_24_hours,
            has_delivery=row.has_delivery,
            has_drive_through=row.has_drive_through,
            accepts_insurance=row.accepts_insurance,
            has_consultation=row.has_consultation,
            chain_name=row.chain_name,
            rating=row.rating,
            is_active=row.is_active,
            services=tuple(str(item) for item in services),
        )
