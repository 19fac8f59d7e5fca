"""
Export sections, their columns and the row-expansion policy.

A section is a named group of columns (general info, values, goods, ...).
Item-level sections (goods, documents, containers, duties) produce one row per
child row of a declaration; a declaration without children in that section
still produces a single placeholder row with blank section columns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from customs_app.customs.models import Container, Document, Duty, Goods, Header
from customs_app.customs.references import ENTITY_ROLES, RECOGNIZED_DUTIES, teus_for_size
from customs_app.exports.formatters import display_value, document_info, rupiah, unit_price
from customs_app.query.exceptions import InvalidSectionError


class Section(str, Enum):
    """Export section identifiers, in canonical column order."""

    GENERAL = "general"
    VALUES = "values"
    BC11 = "bc11"
    WAREHOUSE = "warehouse"
    GOODS = "goods"
    DOCUMENTS = "documents"
    CONTAINERS = "containers"
    DUTIES = "duties"


SECTION_ALIASES = {"basic": Section.GENERAL}
DEFAULT_SECTIONS = (Section.GENERAL,)

# Item-level sections, highest precedence first, for single-sheet expansion
EXPANSION_PRECEDENCE = (Section.CONTAINERS, Section.GOODS, Section.DOCUMENTS, Section.DUTIES)

# Relationships to eager load for each section
SECTION_RELATIONS: Dict[Section, Tuple[str, ...]] = {
    Section.GENERAL: ("data", "entities"),
    Section.VALUES: ("data",),
    Section.BC11: ("data",),
    Section.WAREHOUSE: ("data", "carriers"),
    Section.GOODS: ("data", "goods"),
    Section.DOCUMENTS: ("documents",),
    Section.CONTAINERS: ("containers",),
    Section.DUTIES: ("duties",),
}
SUMMARY_RELATIONS = ("entities", "containers", "goods")


def parse_sections(value: Union[None, str, Iterable[str]]) -> List[Section]:
    """Parse a comma-separated string or list of section names into canonical order."""
    if value is None:
        names: List[str] = []
    elif isinstance(value, str):
        names = value.split(",")
    else:
        names = list(value)

    requested = set()
    for name in names:
        key = str(name).strip().lower()
        if not key:
            continue
        if key in SECTION_ALIASES:
            requested.add(SECTION_ALIASES[key])
            continue
        try:
            requested.add(Section(key))
        except ValueError:
            raise InvalidSectionError(str(name).strip()) from None

    if not requested:
        return list(DEFAULT_SECTIONS)
    return [section for section in Section if section in requested]


def relations_for(sections: Iterable[Section]) -> Tuple[str, ...]:
    relations: List[str] = []
    for section in sections:
        for relation in SECTION_RELATIONS[section]:
            if relation not in relations:
                relations.append(relation)
    return tuple(relations)


# ===== CHILD ACCESS =====


def recognized_duties(header: Header) -> List[Duty]:
    """BM, PPH and PPN charges of a declaration, ordered by type."""
    duties = [d for d in header.duties if (d.keterangan or "").strip().upper() in RECOGNIZED_DUTIES]
    return sorted(duties, key=lambda d: d.keterangan.strip().upper())


def section_items(section: Section, header: Header) -> list:
    if section == Section.GOODS:
        return list(header.goods)
    if section == Section.DOCUMENTS:
        return list(header.documents)
    if section == Section.CONTAINERS:
        return list(header.containers)
    if section == Section.DUTIES:
        return recognized_duties(header)
    return []


@dataclass(frozen=True)
class RowContext:
    """One output row: a declaration plus, optionally, the child item it expands."""

    header: Header
    item: Any = None
    sequence: Optional[int] = None

    @property
    def data(self):
        return self.header.data

    def entity(self, role: str):
        return self.header.entity(ENTITY_ROLES[role])

    def _item_or_first(self, kind: type, items: Sequence):
        if isinstance(self.item, kind):
            return self.item
        return items[0] if items else None

    @property
    def goods(self) -> Optional[Goods]:
        return self._item_or_first(Goods, self.header.goods)

    @property
    def document(self) -> Optional[Document]:
        return self._item_or_first(Document, self.header.documents)

    @property
    def container(self) -> Optional[Container]:
        return self._item_or_first(Container, self.header.containers)

    @property
    def duty(self) -> Optional[Duty]:
        return self._item_or_first(Duty, recognized_duties(self.header))

    @property
    def carrier(self):
        carriers = self.header.carriers
        return carriers[0] if carriers else None


@dataclass(frozen=True)
class ColumnSpec:
    header: str
    value: Callable[[RowContext], Any]


def _attr(obj, name: str) -> Any:
    return getattr(obj, name) if obj is not None else None


def _header(name: str) -> Callable[[RowContext], Any]:
    return lambda ctx: getattr(ctx.header, name)


def _data(name: str) -> Callable[[RowContext], Any]:
    return lambda ctx: _attr(ctx.data, name)


def _entity(role: str, name: str) -> Callable[[RowContext], Any]:
    return lambda ctx: _attr(ctx.entity(role), name)


def _child(kind: str, name: str) -> Callable[[RowContext], Any]:
    return lambda ctx: _attr(getattr(ctx, kind), name)


def _goods_unit_price(ctx: RowContext) -> str:
    goods = ctx.goods
    if goods is None:
        return ""
    return unit_price(goods.cif, goods.jumlahsatuan, _attr(ctx.data, "kodevaluta"))


def _duty_type(ctx: RowContext) -> str:
    duty = ctx.duty
    return duty.keterangan.strip().upper() if duty is not None else ""


def _duty_number(ctx: RowContext) -> Any:
    duty = ctx.duty
    return RECOGNIZED_DUTIES.get(duty.keterangan.strip().upper(), "") if duty is not None else ""


def _duty_sequence(ctx: RowContext) -> Any:
    return ctx.sequence if isinstance(ctx.item, Duty) else ""


def _duty_rupiah(ctx: RowContext) -> str:
    duty = ctx.duty
    return rupiah(duty.dibayar) if duty is not None else ""


# ===== COLUMN GROUPS =====

BASE_COLUMNS = (
    ColumnSpec("PIB", _header("nomordaftar")),
    ColumnSpec("Tanggal", _header("tanggaldaftar")),
    ColumnSpec("Jalur", _header("kodejalur")),
)

GENERAL_COLUMNS = (
    ColumnSpec("CAR", _header("nomoraju")),
    ColumnSpec("Kode Kantor", _data("kodekantor")),
    ColumnSpec("Nama Kantor", _data("namakantorpendek")),
    ColumnSpec("ID Importir", _entity("importir", "nomoridentitas")),
    ColumnSpec("Nama Importir", _entity("importir", "namaentitas")),
    ColumnSpec("Nama Penjual", _entity("penjual", "namaentitas")),
    ColumnSpec("Alamat Penjual", _entity("penjual", "alamatentitas")),
    ColumnSpec("Kode Negara Penjual", _entity("penjual", "kodenegara")),
    ColumnSpec("Nama Negara Penjual", _entity("penjual", "namanegara")),
    ColumnSpec("Nama Pengirim", _entity("pengirim", "namaentitas")),
    ColumnSpec("Alamat Pengirim", _entity("pengirim", "alamatentitas")),
    ColumnSpec("Kode Negara Pengirim", _entity("pengirim", "kodenegara")),
    ColumnSpec("Nama Negara Pengirim", _entity("pengirim", "namanegara")),
    ColumnSpec("Nama Pemilik", _entity("pemilik", "namaentitas")),
    ColumnSpec("Alamat Pemilik", _entity("pemilik", "alamatentitas")),
    ColumnSpec("Nama PPJK", _entity("ppjk", "namaentitas")),
    ColumnSpec("Kode Pelabuhan Muat", _data("kodepelmuat")),
    ColumnSpec("Nama Pelabuhan Muat", _data("namapelabuhanmuat")),
    ColumnSpec("Kode Pelabuhan Transit", _data("kodepeltransit")),
    ColumnSpec("Nama Pelabuhan Transit", _data("namapelabuhantransit")),
    ColumnSpec("Status Importir", _entity("importir", "kodestatus")),
    ColumnSpec("Kode Jenis API", _entity("importir", "kodejenisapi")),
)

VALUES_COLUMNS = (
    ColumnSpec("NETTO", _data("netto")),
    ColumnSpec("BRUTO", _data("bruto")),
    ColumnSpec("CIF", _data("cif")),
    ColumnSpec("NDPBM", _data("ndpbm")),
    # customs value is reported as CIF
    ColumnSpec("Nilai Pabean", _data("cif")),
    ColumnSpec("Kode Valuta", _data("kodevaluta")),
)

BC11_COLUMNS = (
    ColumnSpec("Tanggal Tiba", _data("tanggaltiba")),
    ColumnSpec("Nomor BC11", _data("nomorbc11")),
    ColumnSpec("Tanggal BC11", _data("tanggalbc11")),
    ColumnSpec("Pos BC11", _data("posbc11")),
    ColumnSpec("Sub Pos BC11", _data("subposbc11")),
)

WAREHOUSE_COLUMNS = (
    ColumnSpec("Nama Gudang", _data("namatpswajib")),
    ColumnSpec("Kode TPS", _data("kodetps")),
    ColumnSpec("Nama Pengangkut", _child("carrier", "namapengangkut")),
    ColumnSpec("Nomor Voy/Flight", _child("carrier", "nomorpengangkut")),
    ColumnSpec("Kode Bendera", _child("carrier", "kodebendera")),
    ColumnSpec("Nama Negara Pengangkut", _child("carrier", "namanegara")),
)

_PACKAGING_COLUMNS = (
    ColumnSpec("Jumlah Kemasan", _child("goods", "jumlahkemasan")),
    ColumnSpec("Kode Jenis Kemasan", _child("goods", "kodejeniskemasan")),
    ColumnSpec("Nama Kemasan", _child("goods", "namajeniskemasan")),
)

_GOODS_DETAIL_COLUMNS = (
    ColumnSpec("No Barang", _child("goods", "seribarang")),
    ColumnSpec("HS Code", _child("goods", "postarif")),
    ColumnSpec("Uraian Barang", _child("goods", "uraian")),
    ColumnSpec("CIF Barang", _child("goods", "cif")),
    ColumnSpec("Valuta", lambda ctx: _attr(ctx.data, "kodevaluta") if ctx.goods is not None else None),
    ColumnSpec("Jumlah", _child("goods", "jumlahsatuan")),
    ColumnSpec("Satuan Barang", _child("goods", "kodesatuanbarang")),
)

_UNIT_PRICE = ColumnSpec("Unit Price", _goods_unit_price)

GOODS_FLAT_COLUMNS = _PACKAGING_COLUMNS + _GOODS_DETAIL_COLUMNS + (_UNIT_PRICE,)
GOODS_SHEET_COLUMNS = _GOODS_DETAIL_COLUMNS + _PACKAGING_COLUMNS + (_UNIT_PRICE,)

DOCUMENT_COLUMNS = (
    ColumnSpec("No Dokumen", _child("document", "seridokumen")),
    ColumnSpec("Dokumen", lambda ctx: document_info(ctx.document)),
    ColumnSpec("Tanggal Dokumen", _child("document", "tanggaldokumen")),
)

CONTAINER_COLUMNS = (
    ColumnSpec("No Kontainer (Urut)", _child("container", "serikontainer")),
    ColumnSpec("Nomor Kontainer", _child("container", "nomorkontainer")),
    ColumnSpec("Ukuran Kontainer", _child("container", "namaukurankontainer")),
    ColumnSpec("Tipe Kontainer", _child("container", "namajeniskontainer")),
)

DUTY_FLAT_COLUMNS = (
    ColumnSpec("No Pungutan", _duty_number),
    ColumnSpec("Jenis Pungutan", _duty_type),
    ColumnSpec("Nilai Pungutan", _child("duty", "dibayar")),
)

DUTY_SHEET_COLUMNS = (
    ColumnSpec("No Pungutan", _duty_sequence),
    ColumnSpec("Jenis Pungutan", lambda ctx: _duty_type(ctx) if isinstance(ctx.item, Duty) else ""),
    ColumnSpec("Nilai Pungutan", lambda ctx: _duty_rupiah(ctx) if isinstance(ctx.item, Duty) else ""),
)

FLAT_GROUPS: Dict[Section, Tuple[ColumnSpec, ...]] = {
    Section.GENERAL: GENERAL_COLUMNS,
    Section.VALUES: VALUES_COLUMNS,
    Section.BC11: BC11_COLUMNS,
    Section.WAREHOUSE: WAREHOUSE_COLUMNS,
    Section.GOODS: GOODS_FLAT_COLUMNS,
    Section.DOCUMENTS: DOCUMENT_COLUMNS,
    Section.CONTAINERS: CONTAINER_COLUMNS,
    Section.DUTIES: DUTY_FLAT_COLUMNS,
}


def _build_row(columns: Sequence[ColumnSpec], ctx: RowContext) -> List[Any]:
    return [display_value(column.value(ctx)) for column in columns]


def _expand(header: Header, section: Optional[Section]) -> List[RowContext]:
    """Row contexts for one declaration; an empty item section yields one placeholder."""
    if section is None:
        return [RowContext(header)]
    items = section_items(section, header)
    if not items:
        return [RowContext(header)]
    return [RowContext(header, item, index) for index, item in enumerate(items, start=1)]


# ===== MULTI-SHEET LAYOUT =====


@dataclass(frozen=True)
class SheetSpec:
    title: str
    color: str
    columns: Tuple[ColumnSpec, ...]
    sections: Tuple[Section, ...]
    item_section: Optional[Section] = None

    @property
    def headers(self) -> List[str]:
        return [column.header for column in self.columns]

    def rows(self, header: Header) -> List[List[Any]]:
        return [_build_row(self.columns, ctx) for ctx in _expand(header, self.item_section)]


SHEETS = (
    SheetSpec("Data Umum", "2563EB", BASE_COLUMNS + GENERAL_COLUMNS, (Section.GENERAL,)),
    SheetSpec("Nilai", "CA8A04", BASE_COLUMNS + VALUES_COLUMNS, (Section.VALUES,)),
    SheetSpec(
        "BC 1.1 & Gudang", "06B6D4",
        BASE_COLUMNS + BC11_COLUMNS + WAREHOUSE_COLUMNS,
        (Section.BC11, Section.WAREHOUSE),
    ),
    SheetSpec("Barang", "EA580C", BASE_COLUMNS + GOODS_SHEET_COLUMNS, (Section.GOODS,), Section.GOODS),
    SheetSpec("Dokumen", "7C3AED", BASE_COLUMNS + DOCUMENT_COLUMNS, (Section.DOCUMENTS,), Section.DOCUMENTS),
    SheetSpec("Kontainer", "DC2626", BASE_COLUMNS + CONTAINER_COLUMNS, (Section.CONTAINERS,), Section.CONTAINERS),
    SheetSpec("Data Pungutan", "059669", BASE_COLUMNS + DUTY_SHEET_COLUMNS, (Section.DUTIES,), Section.DUTIES),
)


def sheets_for(sections: Iterable[Section]) -> List[SheetSpec]:
    requested = set(sections)
    return [sheet for sheet in SHEETS if requested.intersection(sheet.sections)]


# ===== FLAT ADAPTIVE LAYOUT =====

FLAT_SHEET_TITLE = "Customs Data"
FLAT_SHEET_COLOR = "4F81BD"


class FlatLayout:
    """Single table with one column group per requested section."""

    def __init__(self, sections: Iterable[Section]):
        self.sections = [section for section in Section if section in set(sections)]
        columns: List[ColumnSpec] = list(BASE_COLUMNS)
        for section in self.sections:
            columns.extend(FLAT_GROUPS[section])
        self.columns = tuple(columns)

    @property
    def headers(self) -> List[str]:
        return [column.header for column in self.columns]

    def expansion_section(self, header: Header) -> Optional[Section]:
        """First requested item section, by precedence, that has rows for this declaration."""
        for section in EXPANSION_PRECEDENCE:
            if section in self.sections and section_items(section, header):
                return section
        return None

    def rows(self, header: Header) -> List[List[Any]]:
        return [_build_row(self.columns, ctx) for ctx in _expand(header, self.expansion_section(header))]

    def records(self, header: Header) -> List[Dict[str, Any]]:
        headers = self.headers
        return [dict(zip(headers, row), idheader=header.idheader) for row in self.rows(header)]


# ===== SUMMARY ROW =====


def summary_row(header: Header) -> Dict[str, Any]:
    """One row per declaration for the interactive result table."""
    importir = header.entity(ENTITY_ROLES["importir"])
    ppjk = header.entity(ENTITY_ROLES["ppjk"])
    penjual = header.entity(ENTITY_ROLES["penjual"])
    goods = sorted(header.goods, key=lambda g: (g.seribarang is None, g.seribarang or 0))
    first_goods = goods[0] if goods else None
    teus = sum(teus_for_size(c.kodeukurankontainer) for c in header.containers)

    return {
        "idheader": header.idheader,
        "nomordaftar": header.nomordaftar,
        "tanggaldaftar": display_value(header.tanggaldaftar) or None,
        "kodejalur": header.kodejalur,
        "namaimportir": _attr(importir, "namaentitas") or header.namaperusahaan,
        "namappjk": _attr(ppjk, "namaentitas") or header.namappjk,
        "namapenjual": _attr(penjual, "namaentitas"),
        "kontainer_count": len(header.containers),
        "teus": round(teus, 2),
        "barang_count": len(header.goods),
        "hscode": _attr(first_goods, "postarif"),
        "uraian_barang": _attr(first_goods, "uraian"),
    }
