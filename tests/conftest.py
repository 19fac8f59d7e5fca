"""
Test configuration and shared fixtures for the customs rule query service.
Provides database setup, the API client and BC20 sample declarations.
"""

from datetime import date
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import customs_app.app as app_module
import customs_app.logging.exception_handlers as exception_handlers
import customs_app.logging.middleware as logging_middleware
from customs_app.app import create_app
from customs_app.core.database import Base, CustomsBase, get_customs_db, get_db
from customs_app.customs.models import (
    Carrier,
    Container,
    Document,
    Duty,
    Entity,
    Goods,
    Header,
    HeaderData,
)


# ===== DATABASE SETUP =====

@pytest.fixture(scope="session")
def app_engine():
    """In-memory SQLite engine for the application database"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from customs_app.rulesets.models import QueryExecutionLog, RuleSet  # noqa: F401
    from customs_app.logging.models import Log  # noqa: F401
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="session")
def customs_engine():
    """In-memory SQLite engine for the customs warehouse"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    CustomsBase.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def app_db_session(app_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Clean up all data after each test
        Base.metadata.drop_all(bind=app_engine)
        Base.metadata.create_all(bind=app_engine)


@pytest.fixture(scope="function")
def customs_db_session(customs_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=customs_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        CustomsBase.metadata.drop_all(bind=customs_engine)
        CustomsBase.metadata.create_all(bind=customs_engine)


@pytest.fixture
def client(app_engine, app_db_session, customs_db_session, monkeypatch):
    """FastAPI test client wired to the in-memory databases"""
    # Request and error logs go to the test application database
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    monkeypatch.setattr(app_module, "init_db", lambda: None)
    monkeypatch.setattr(logging_middleware, "SessionLocal", TestingSessionLocal)
    monkeypatch.setattr(exception_handlers, "SessionLocal", TestingSessionLocal)

    app = create_app()

    def override_get_db():
        yield app_db_session

    def override_get_customs_db():
        yield customs_db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_customs_db] = override_get_customs_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> Dict[str, str]:
    return {"X-User": "analyst"}


@pytest.fixture
def other_user_headers() -> Dict[str, str]:
    return {"X-User": "auditor"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-User": "supervisor", "X-User-Role": "admin"}


# ===== SAMPLE DATA FIXTURES =====

def _entity(role: str, name: str, **extra) -> Entity:
    return Entity(kodeentitas=role, namaentitas=name, **extra)


@pytest.fixture
def sample_declarations(customs_db_session) -> List[Header]:
    """
    Four declarations:

    1. jalur H, 2024-01-10, importer PT MAJU JAYA, 3 goods (two 8471 lines),
       containers 20' + 40', one document, duties BM/PPN/PPH plus an unrecognized PPNBM
    2. jalur M, 2024-02-15, importer PT SUMBER MAKMUR, 1 goods line, nothing else
    3. jalur K, 2024-03-01, importer CV ABADI, no goods, one 45' container
    4. jalur H, 2024-03-20, importer PT MAJU JAYA, 1 goods line, no bc20_data row
    """
    declarations = [
        Header(
            idheader=1,
            nomoraju="CAR0001",
            nomordaftar="000101",
            tanggaldaftar=date(2024, 1, 10),
            kodejalur="H",
            namaperusahaan="PT MAJU JAYA",
            data=HeaderData(
                cif=1000.0,
                bruto=30000.0,
                netto=28000.0,
                ndpbm=15500.0,
                kodevaluta="USD",
                kodepelmuat="CNSHA",
                namapelabuhanmuat="SHANGHAI",
                tanggaltiba=date(2024, 1, 5),
                nomorbc11="BC11-001",
                tanggalbc11=date(2024, 1, 4),
                posbc11="0010",
                kodetps="TPS1",
                namatpswajib="GUDANG KOJA",
                kodekantor="040300",
                namakantorpendek="TANJUNG PRIOK",
            ),
            entities=[
                _entity("1", "PT MAJU JAYA", nomoridentitas="0123456789", kodestatus="AEO"),
                _entity("4", "PT PPJK SEJAHTERA"),
                _entity("10", "SHANGHAI TRADING CO", kodenegara="CN", namanegara="CHINA"),
            ],
            carriers=[Carrier(namapengangkut="MSC ANNA", nomorpengangkut="V123", kodebendera="PA")],
            goods=[
                Goods(seribarang=1, postarif="84713010", uraian="LAPTOP", cif=100.0, jumlahsatuan=4,
                      kodesatuanbarang="PCE", jumlahkemasan=1, kodejeniskemasan="CT"),
                Goods(seribarang=2, postarif="85171200", uraian="MOBILE PHONE", cif=50.0, jumlahsatuan=0),
                Goods(seribarang=3, postarif="84713020", uraian="TABLET 100%_PROMO", cif=30.0, jumlahsatuan=None),
            ],
            containers=[
                Container(serikontainer=1, nomorkontainer="MSCU1234567", kodeukurankontainer="20",
                          namaukurankontainer="20 FEET"),
                Container(serikontainer=2, nomorkontainer="MSCU7654321", kodeukurankontainer="40",
                          namaukurankontainer="40 FEET"),
            ],
            documents=[
                Document(seridokumen=1, kodedokumen="380", namadokumen="INVOICE", nomordokumen="INV-1",
                         tanggaldokumen=date(2024, 1, 2)),
            ],
            duties=[
                Duty(keterangan="PPN", dibayar=200.0),
                Duty(keterangan="BM", dibayar=100.0),
                Duty(keterangan="PPNBM", dibayar=5.0),
                Duty(keterangan="PPH", dibayar=50.0),
            ],
        ),
        Header(
            idheader=2,
            nomordaftar="000102",
            tanggaldaftar=date(2024, 2, 15),
            kodejalur="M",
            namaperusahaan="PT SUMBER MAKMUR",
            data=HeaderData(cif=200.0, bruto=500.0, kodevaluta="EUR"),
            entities=[_entity("1", "PT SUMBER MAKMUR")],
            goods=[Goods(seribarang=1, postarif="61091000", uraian="T-SHIRT", cif=200.0, jumlahsatuan=100)],
        ),
        Header(
            idheader=3,
            nomordaftar="000103",
            tanggaldaftar=date(2024, 3, 1),
            kodejalur="K",
            namaperusahaan="CV ABADI",
            data=HeaderData(cif=0.0, bruto=9000.0, kodevaluta="USD"),
            entities=[_entity("1", "CV ABADI")],
            containers=[Container(serikontainer=1, nomorkontainer="TGHU0000001", kodeukurankontainer="45")],
        ),
        Header(
            idheader=4,
            nomordaftar="000104",
            tanggaldaftar=date(2024, 3, 20),
            kodejalur="H",
            namaperusahaan="PT MAJU JAYA",
            entities=[_entity("1", "PT MAJU JAYA")],
            goods=[Goods(seribarang=1, postarif="84715000", uraian="SERVER", cif=500.0, jumlahsatuan=2)],
        ),
    ]
    for declaration in declarations:
        customs_db_session.add(declaration)
    customs_db_session.commit()
    return declarations


@pytest.fixture
def many_declarations(customs_db_session) -> List[Header]:
    """25 declarations on jalur H, numbered 000201..000225, each with one goods line."""
    declarations = []
    for number in range(1, 26):
        declaration = Header(
            idheader=100 + number,
            nomordaftar=f"000{200 + number}",
            tanggaldaftar=date(2024, 4, 1 + (number % 28)),
            kodejalur="H",
            entities=[_entity("1", f"IMPORTER {number:02d}")],
            goods=[Goods(seribarang=1, postarif="39269099", uraian=f"PART {number}", cif=10.0, jumlahsatuan=5)],
        )
        declarations.append(declaration)
        customs_db_session.add(declaration)
    customs_db_session.commit()
    return declarations
