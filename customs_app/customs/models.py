"""Database models for the BC20 customs declaration tables (customs warehouse database)."""

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from customs_app.core.database import CustomsBase as Base


class Header(Base):
    """One customs declaration (PIB). Root of every child table."""

    __tablename__ = "bc20_header"

    idheader: Mapped[int] = mapped_column(Integer, primary_key=True)
    nomoraju = Column(String(40), nullable=True, index=True)
    nomordaftar = Column(String(20), nullable=True, index=True)
    tanggaldaftar = Column(Date, nullable=True, index=True)
    kodejalur = Column(String(2), nullable=True)
    namaperusahaan = Column(String(255), nullable=True)
    namappjk = Column(String(255), nullable=True)
    namakantor = Column(String(255), nullable=True)
    kodedokumen = Column(String(10), nullable=True)
    kodeproses = Column(String(10), nullable=True)
    namaproses = Column(String(100), nullable=True)
    namarespon = Column(String(255), nullable=True)
    tanggalrespon = Column(DateTime, nullable=True)

    data = relationship("HeaderData", back_populates="header", uselist=False)
    goods = relationship("Goods", back_populates="header", order_by="Goods.seribarang")
    packaging = relationship("Packaging", back_populates="header", order_by="Packaging.serikemasan")
    documents = relationship("Document", back_populates="header", order_by="Document.seridokumen")
    containers = relationship("Container", back_populates="header", order_by="Container.serikontainer")
    entities = relationship("Entity", back_populates="header", order_by="Entity.serientitas")
    carriers = relationship("Carrier", back_populates="header", order_by="Carrier.id")
    duties = relationship("Duty", back_populates="header", order_by="Duty.keterangan")

    def entity(self, role_code: str):
        """First party with the given kodeentitas, or None."""
        for entity in self.entities:
            if entity.kodeentitas == role_code:
                return entity
        return None


class HeaderData(Base):
    """Extended declaration attributes, one row per header."""

    __tablename__ = "bc20_data"

    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), primary_key=True)

    # Values
    netto = Column(Float, nullable=True)
    bruto = Column(Float, nullable=True)
    cif = Column(Float, nullable=True)
    ndpbm = Column(Float, nullable=True)
    nilaipabean = Column(Float, nullable=True)
    fob = Column(Float, nullable=True)
    freight = Column(Float, nullable=True)
    asuransi = Column(Float, nullable=True)
    volume = Column(Float, nullable=True)
    kodevaluta = Column(String(3), nullable=True)

    # Ports and arrival
    kodepelmuat = Column(String(10), nullable=True)
    namapelabuhanmuat = Column(String(255), nullable=True)
    kodepeltransit = Column(String(10), nullable=True)
    namapelabuhantransit = Column(String(255), nullable=True)
    tanggaltiba = Column(Date, nullable=True)

    # BC 1.1 manifest
    nomorbc11 = Column(String(20), nullable=True)
    tanggalbc11 = Column(Date, nullable=True)
    posbc11 = Column(String(10), nullable=True)
    subposbc11 = Column(String(10), nullable=True)

    # Warehouse and office
    kodetps = Column(String(10), nullable=True)
    namatpswajib = Column(String(255), nullable=True)
    kodekantor = Column(String(10), nullable=True)
    namakantorpendek = Column(String(100), nullable=True)

    header = relationship("Header", back_populates="data")


class Goods(Base):
    """Declaration line item (barang)."""

    __tablename__ = "bc20_barang"

    idbarang: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    seribarang = Column(Integer, nullable=True)
    postarif = Column(String(20), nullable=True)
    uraian = Column(Text, nullable=True)
    kodebarang = Column(String(50), nullable=True)
    jumlahsatuan = Column(Float, nullable=True)
    kodesatuanbarang = Column(String(10), nullable=True)
    namasatuanbarang = Column(String(100), nullable=True)
    jumlahkemasan = Column(Float, nullable=True)
    kodejeniskemasan = Column(String(10), nullable=True)
    namajeniskemasan = Column(String(100), nullable=True)
    cif = Column(Float, nullable=True)
    fob = Column(Float, nullable=True)
    freight = Column(Float, nullable=True)
    asuransi = Column(Float, nullable=True)
    netto = Column(Float, nullable=True)
    bruto = Column(Float, nullable=True)
    volume = Column(Float, nullable=True)

    header = relationship("Header", back_populates="goods")


class Packaging(Base):
    """Declaration-level packaging (kemasan)."""

    __tablename__ = "bc20_kemasan"

    idkemasan: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    serikemasan = Column(Integer, nullable=True)
    jumlahkemasan = Column(Float, nullable=True)
    kodejeniskemasan = Column(String(10), nullable=True)
    namakemasan = Column(String(100), nullable=True)

    header = relationship("Header", back_populates="packaging")


class Document(Base):
    """Supporting document attached to a declaration (dokumen)."""

    __tablename__ = "bc20_dokumen"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    seridokumen = Column(Integer, nullable=True)
    kodedokumen = Column(String(10), nullable=True)
    namadokumen = Column(String(255), nullable=True)
    nomordokumen = Column(String(100), nullable=True)
    tanggaldokumen = Column(Date, nullable=True)
    kodefasilitas = Column(String(10), nullable=True)
    namafasilitas = Column(String(255), nullable=True)

    header = relationship("Header", back_populates="documents")


class Container(Base):
    """Shipping container (kontainer)."""

    __tablename__ = "bc20_kontainer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    serikontainer = Column(Integer, nullable=True)
    nomorkontainer = Column(String(20), nullable=True)
    kodeukurankontainer = Column(String(5), nullable=True)
    namaukurankontainer = Column(String(50), nullable=True)
    kodejeniskontainer = Column(String(5), nullable=True)
    namajeniskontainer = Column(String(50), nullable=True)

    header = relationship("Header", back_populates="containers")


class Entity(Base):
    """Party to a declaration, disambiguated by kodeentitas."""

    __tablename__ = "bc20_entitas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    kodeentitas = Column(String(3), nullable=False, index=True)
    serientitas = Column(Integer, nullable=True)
    namaentitas = Column(String(255), nullable=True)
    alamatentitas = Column(Text, nullable=True)
    nomoridentitas = Column(String(50), nullable=True)
    kodenegara = Column(String(3), nullable=True)
    namanegara = Column(String(100), nullable=True)
    kodestatus = Column(String(10), nullable=True)
    kodejenisapi = Column(String(10), nullable=True)
    nomorapi = Column(String(50), nullable=True)

    header = relationship("Header", back_populates="entities")


class Carrier(Base):
    """Transport / vessel information (pengangkut)."""

    __tablename__ = "bc20_pengangkut"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    namapengangkut = Column(String(255), nullable=True)
    nomorpengangkut = Column(String(50), nullable=True)
    kodebendera = Column(String(3), nullable=True)
    namanegara = Column(String(100), nullable=True)

    header = relationship("Header", back_populates="carriers")


class Duty(Base):
    """Government charge levied on a declaration (pungutan)."""

    __tablename__ = "bc20_pungutan"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idheader: Mapped[int] = mapped_column(ForeignKey("bc20_header.idheader"), index=True)
    keterangan = Column(String(20), nullable=True)
    dibayar = Column(Float, nullable=True)
    ditanggungpemerintah = Column(Float, nullable=True)
    ditangguhkan = Column(Float, nullable=True)
    berkala = Column(Float, nullable=True)
    dibebaskan = Column(Float, nullable=True)
    tidakdipungut = Column(Float, nullable=True)
    sudahdilunasi = Column(Float, nullable=True)
    dijaminkan = Column(Float, nullable=True)
    ditunda = Column(Float, nullable=True)

    header = relationship("Header", back_populates="duties")
