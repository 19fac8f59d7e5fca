"""Read schemas for a fully hydrated customs declaration."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CustomsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class HeaderDataRead(CustomsModel):
    netto: Optional[float] = None
    bruto: Optional[float] = None
    cif: Optional[float] = None
    ndpbm: Optional[float] = None
    nilaipabean: Optional[float] = None
    fob: Optional[float] = None
    freight: Optional[float] = None
    asuransi: Optional[float] = None
    volume: Optional[float] = None
    kodevaluta: Optional[str] = None
    kodepelmuat: Optional[str] = None
    namapelabuhanmuat: Optional[str] = None
    kodepeltransit: Optional[str] = None
    namapelabuhantransit: Optional[str] = None
    tanggaltiba: Optional[date] = None
    nomorbc11: Optional[str] = None
    tanggalbc11: Optional[date] = None
    posbc11: Optional[str] = None
    subposbc11: Optional[str] = None
    kodetps: Optional[str] = None
    namatpswajib: Optional[str] = None
    kodekantor: Optional[str] = None
    namakantorpendek: Optional[str] = None


class GoodsRead(CustomsModel):
    idbarang: int
    seribarang: Optional[int] = None
    postarif: Optional[str] = None
    uraian: Optional[str] = None
    kodebarang: Optional[str] = None
    jumlahsatuan: Optional[float] = None
    kodesatuanbarang: Optional[str] = None
    namasatuanbarang: Optional[str] = None
    jumlahkemasan: Optional[float] = None
    kodejeniskemasan: Optional[str] = None
    namajeniskemasan: Optional[str] = None
    cif: Optional[float] = None
    fob: Optional[float] = None
    netto: Optional[float] = None
    bruto: Optional[float] = None


class PackagingRead(CustomsModel):
    serikemasan: Optional[int] = None
    jumlahkemasan: Optional[float] = None
    kodejeniskemasan: Optional[str] = None
    namakemasan: Optional[str] = None


class DocumentRead(CustomsModel):
    seridokumen: Optional[int] = None
    kodedokumen: Optional[str] = None
    namadokumen: Optional[str] = None
    nomordokumen: Optional[str] = None
    tanggaldokumen: Optional[date] = None
    kodefasilitas: Optional[str] = None
    namafasilitas: Optional[str] = None


class ContainerRead(CustomsModel):
    serikontainer: Optional[int] = None
    nomorkontainer: Optional[str] = None
    kodeukurankontainer: Optional[str] = None
    namaukurankontainer: Optional[str] = None
    kodejeniskontainer: Optional[str] = None
    namajeniskontainer: Optional[str] = None


class EntityRead(CustomsModel):
    kodeentitas: str
    serientitas: Optional[int] = None
    namaentitas: Optional[str] = None
    alamatentitas: Optional[str] = None
    nomoridentitas: Optional[str] = None
    kodenegara: Optional[str] = None
    namanegara: Optional[str] = None
    nomorapi: Optional[str] = None


class CarrierRead(CustomsModel):
    namapengangkut: Optional[str] = None
    nomorpengangkut: Optional[str] = None
    kodebendera: Optional[str] = None
    namanegara: Optional[str] = None


class DutyRead(CustomsModel):
    keterangan: Optional[str] = None
    dibayar: Optional[float] = None
    ditanggungpemerintah: Optional[float] = None
    ditangguhkan: Optional[float] = None
    berkala: Optional[float] = None
    dibebaskan: Optional[float] = None
    tidakdipungut: Optional[float] = None
    sudahdilunasi: Optional[float] = None
    dijaminkan: Optional[float] = None
    ditunda: Optional[float] = None


class HeaderDetail(CustomsModel):
    """A declaration with every child table, as returned by the detail endpoint."""

    idheader: int
    nomoraju: Optional[str] = None
    nomordaftar: Optional[str] = None
    tanggaldaftar: Optional[date] = None
    kodejalur: Optional[str] = None
    namaperusahaan: Optional[str] = None
    namappjk: Optional[str] = None
    namakantor: Optional[str] = None
    kodedokumen: Optional[str] = None
    kodeproses: Optional[str] = None
    namaproses: Optional[str] = None
    namarespon: Optional[str] = None
    tanggalrespon: Optional[datetime] = None

    data: Optional[HeaderDataRead] = None
    entities: List[EntityRead] = []
    carriers: List[CarrierRead] = []
    goods: List[GoodsRead] = []
    packaging: List[PackagingRead] = []
    documents: List[DocumentRead] = []
    containers: List[ContainerRead] = []
    duties: List[DutyRead] = []
