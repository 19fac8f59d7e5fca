"""
Field registry for the customs rule query builder.

Every field a client may reference in a rule tree is registered here, once, at
import time. A field name resolves to a FieldDescriptor describing the table
relation it lives in, the physical column, its value type and whether the
relation is one-to-many. Names not registered here can never reach SQL.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from customs_app.customs.references import ENTITY_ROLES, ROUTE_CODES
from customs_app.query.exceptions import InvalidOperatorError, UnknownFieldError


class ValueType(str, Enum):
    """Comparison semantics of a field."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    ENUM = "enum"


class Relation(str, Enum):
    """Where a field lives relative to bc20_header."""

    HEADER = "header"
    DATA = "data"
    ENTITY = "entity"
    CARRIER = "carrier"
    GOODS = "goods"
    PACKAGING = "packaging"
    CONTAINER = "container"
    DOCUMENT = "document"
    DUTY = "duty"
    CALCULATED = "calculated"


ONE_TO_MANY_RELATIONS = frozenset(
    {
        Relation.ENTITY,
        Relation.CARRIER,
        Relation.GOODS,
        Relation.PACKAGING,
        Relation.CONTAINER,
        Relation.DOCUMENT,
        Relation.DUTY,
    }
)


# ===== OPERATORS =====

NO_VALUE_OPERATORS = frozenset({"null", "notNull", "isEmpty", "isNotEmpty"})

STRING_OPERATORS = frozenset(
    {
        "=", "!=", "contains", "doesNotContain", "beginsWith", "doesNotBeginWith",
        "endsWith", "doesNotEndWith", "in", "notIn", "null", "notNull", "isEmpty", "isNotEmpty",
    }
)
ORDERED_OPERATORS = frozenset({"=", "!=", "<", "<=", ">", ">=", "between", "notBetween", "in", "notIn", "null", "notNull"})
ENUM_OPERATORS = frozenset({"=", "!=", "in", "notIn", "null", "notNull"})
CALCULATED_OPERATORS = ORDERED_OPERATORS - {"null", "notNull"}

OPERATORS_BY_TYPE: Mapping[ValueType, FrozenSet[str]] = MappingProxyType(
    {
        ValueType.STRING: STRING_OPERATORS,
        ValueType.NUMBER: ORDERED_OPERATORS,
        ValueType.DATE: ORDERED_OPERATORS,
        ValueType.ENUM: ENUM_OPERATORS,
    }
)

# Names emitted by the UI query builder library
OPERATOR_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "==": "=",
        "equals": "=",
        "<>": "!=",
        "doesNotEqual": "!=",
        "like": "contains",
        "notContains": "doesNotContain",
        "notBeginsWith": "doesNotBeginWith",
        "notEndsWith": "doesNotEndWith",
        "gt": ">",
        "gte": ">=",
        "lt": "<",
        "lte": "<=",
        "isNull": "null",
        "isNotNull": "notNull",
    }
)


@dataclass(frozen=True)
class FieldDescriptor:
    """How a client field name maps onto the customs schema."""

    name: str
    label: str
    relation: Relation
    column: str
    value_type: ValueType
    group: str
    entity_role: Optional[str] = None
    choices: Tuple[str, ...] = ()

    @property
    def one_to_many(self) -> bool:
        return self.relation in ONE_TO_MANY_RELATIONS

    @property
    def operators(self) -> FrozenSet[str]:
        if self.relation == Relation.CALCULATED:
            return CALCULATED_OPERATORS
        return OPERATORS_BY_TYPE[self.value_type]


class FieldRegistry:
    """Immutable lookup of field name -> FieldDescriptor."""

    def __init__(self, fields: Dict[str, FieldDescriptor], aliases: Optional[Dict[str, str]] = None):
        self._fields = MappingProxyType(dict(fields))
        self._aliases = MappingProxyType(dict(aliases or {}))

    def __contains__(self, name: object) -> bool:
        return name in self._fields or name in self._aliases

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def resolve(self, name: str) -> FieldDescriptor:
        """Return the descriptor for a field name or raise UnknownFieldError."""
        if name in self._fields:
            return self._fields[name]
        if name in self._aliases:
            return self._fields[self._aliases[name]]
        raise UnknownFieldError(name)

    def normalize_operator(self, descriptor: FieldDescriptor, operator: str) -> str:
        """Map UI operator aliases to canonical names and check them against the field type."""
        canonical = OPERATOR_ALIASES.get(operator, operator)
        if canonical not in descriptor.operators:
            raise InvalidOperatorError(descriptor.name, operator, descriptor.value_type.value)
        return canonical

    def available_fields(self) -> List[Dict]:
        """Listing for the rule builder UI."""
        return [
            {
                "name": f.name,
                "label": f.label,
                "group": f.group,
                "value_type": f.value_type.value,
                "one_to_many": f.one_to_many,
                "operators": sorted(f.operators),
                "choices": list(f.choices),
            }
            for f in self._fields.values()
        ]


# ===== FIELD DEFINITIONS =====

_FIELDS: Dict[str, FieldDescriptor] = {}
_ALIASES: Dict[str, str] = {}


def _register(
    name: str,
    label: str,
    relation: Relation,
    column: str,
    value_type: ValueType = ValueType.STRING,
    group: str = "General",
    entity_role: Optional[str] = None,
    choices: Tuple[str, ...] = (),
) -> None:
    _FIELDS[name] = FieldDescriptor(
        name=name,
        label=label,
        relation=relation,
        column=column,
        value_type=value_type,
        group=group,
        entity_role=entity_role,
        choices=choices,
    )


S, N, D = ValueType.STRING, ValueType.NUMBER, ValueType.DATE

# Header
_register("nomordaftar", "PIB Number", Relation.HEADER, "nomordaftar", group="Header")
_register("tanggaldaftar", "PIB Date", Relation.HEADER, "tanggaldaftar", D, group="Header")
_register("nomoraju", "CAR Number", Relation.HEADER, "nomoraju", group="Header")
_register(
    "kodejalur", "Route Code", Relation.HEADER, "kodejalur", ValueType.ENUM,
    group="Header", choices=tuple(ROUTE_CODES),
)
_register("namaperusahaan", "Company Name", Relation.HEADER, "namaperusahaan", group="Header")
_register("namakantor", "Office Name", Relation.HEADER, "namakantor", group="Header")
_register("kodedokumen", "Document Code", Relation.HEADER, "kodedokumen", group="Header")
_register("kodeproses", "Process Code", Relation.HEADER, "kodeproses", group="Header")
_register("namarespon", "Response Name", Relation.HEADER, "namarespon", group="Header")

# Declaration values (bc20_data)
for _column, _label in [
    ("netto", "Net Weight"),
    ("bruto", "Gross Weight"),
    ("cif", "CIF Value"),
    ("ndpbm", "NDPBM Rate"),
    ("nilaipabean", "Customs Value"),
    ("fob", "FOB Value"),
    ("freight", "Freight Value"),
    ("asuransi", "Insurance Value"),
    ("volume", "Volume"),
]:
    _register(f"data.{_column}", _label, Relation.DATA, _column, N, group="Values")
_register("data.kodevaluta", "Currency Code", Relation.DATA, "kodevaluta", group="Values")

# Ports, BC 1.1 and warehouse fields are addressed without the data. prefix
for _column, _label, _type, _group in [
    ("kodekantor", "Office Code", S, "Header"),
    ("namakantorpendek", "Short Office Name", S, "Header"),
    ("kodepelmuat", "Loading Port Code", S, "Ports"),
    ("namapelabuhanmuat", "Loading Port Name", S, "Ports"),
    ("kodepeltransit", "Transit Port Code", S, "Ports"),
    ("namapelabuhantransit", "Transit Port Name", S, "Ports"),
    ("tanggaltiba", "Arrival Date", D, "Ports"),
    ("nomorbc11", "BC11 Number", S, "BC 1.1"),
    ("tanggalbc11", "BC11 Date", D, "BC 1.1"),
    ("posbc11", "BC11 Position", S, "BC 1.1"),
    ("subposbc11", "BC11 Sub Position", S, "BC 1.1"),
    ("kodetps", "TPS Code", S, "Warehouse"),
    ("namatpswajib", "TPS Name", S, "Warehouse"),
]:
    _register(_column, _label, Relation.DATA, _column, _type, group=_group)
    _ALIASES[f"data.{_column}"] = _column

# Parties (bc20_entitas), one prefix per role
_ENTITY_COLUMNS = [
    ("namaentitas", "Name"),
    ("alamatentitas", "Address"),
    ("nomoridentitas", "ID Number"),
    ("kodenegara", "Country Code"),
    ("namanegara", "Country Name"),
    ("kodestatus", "Status"),
    ("kodejenisapi", "API Type"),
    ("nomorapi", "API Number"),
]
_ENTITY_LABELS = {
    "importir": "Importer",
    "ppjk": "PPJK",
    "penjual": "Seller",
    "pengirim": "Shipper",
    "pemilik": "Owner",
}
for _role, _role_label in _ENTITY_LABELS.items():
    for _column, _label in _ENTITY_COLUMNS:
        _register(
            f"{_role}.{_column}", f"{_role_label} {_label}", Relation.ENTITY, _column,
            group=_role_label, entity_role=ENTITY_ROLES[_role],
        )

# Carrier (bc20_pengangkut)
_register("pengangkut.namapengangkut", "Carrier Name", Relation.CARRIER, "namapengangkut", group="Carrier")
_register("pengangkut.nomorpengangkut", "Voyage/Flight Number", Relation.CARRIER, "nomorpengangkut", group="Carrier")
_register("pengangkut.kodebendera", "Flag Country Code", Relation.CARRIER, "kodebendera", group="Carrier")
_register("pengangkut.namanegara", "Flag Country Name", Relation.CARRIER, "namanegara", group="Carrier")

# Goods (bc20_barang)
for _column, _label, _type in [
    ("seribarang", "Goods Serial Number", N),
    ("postarif", "HS Code", S),
    ("uraian", "Goods Description", S),
    ("kodebarang", "Goods Code", S),
    ("cif", "Goods CIF Value", N),
    ("fob", "Goods FOB Value", N),
    ("freight", "Goods Freight Value", N),
    ("asuransi", "Goods Insurance Value", N),
    ("bruto", "Goods Gross Weight", N),
    ("netto", "Goods Net Weight", N),
    ("volume", "Goods Volume", N),
    ("jumlahsatuan", "Quantity", N),
    ("kodesatuanbarang", "Unit Code", S),
    ("namasatuanbarang", "Unit Name", S),
    ("jumlahkemasan", "Goods Package Quantity", N),
]:
    _register(f"barang.{_column}", _label, Relation.GOODS, _column, _type, group="Goods")

# Packaging (bc20_kemasan)
_register("kemasan.jumlahkemasan", "Package Quantity", Relation.PACKAGING, "jumlahkemasan", N, group="Packaging")
_register("kemasan.kodejeniskemasan", "Package Type Code", Relation.PACKAGING, "kodejeniskemasan", group="Packaging")
_register("kemasan.namakemasan", "Package Type Name", Relation.PACKAGING, "namakemasan", group="Packaging")
_register("kemasan.serikemasan", "Package Serial", Relation.PACKAGING, "serikemasan", N, group="Packaging")

# Containers (bc20_kontainer)
_register("kontainer.serikontainer", "Container Serial", Relation.CONTAINER, "serikontainer", N, group="Containers")
_register("kontainer.nomorkontainer", "Container Number", Relation.CONTAINER, "nomorkontainer", group="Containers")
_register("kontainer.kodeukurankontainer", "Container Size Code", Relation.CONTAINER, "kodeukurankontainer", group="Containers")
_register("kontainer.namaukurankontainer", "Container Size", Relation.CONTAINER, "namaukurankontainer", group="Containers")
_register("kontainer.namajeniskontainer", "Container Type", Relation.CONTAINER, "namajeniskontainer", group="Containers")

# Documents (bc20_dokumen)
_register("dokumen.seridokumen", "Document Serial", Relation.DOCUMENT, "seridokumen", N, group="Documents")
_register("dokumen.kodedokumen", "Document Type Code", Relation.DOCUMENT, "kodedokumen", group="Documents")
_register("dokumen.namadokumen", "Document Name", Relation.DOCUMENT, "namadokumen", group="Documents")
_register("dokumen.nomordokumen", "Document Number", Relation.DOCUMENT, "nomordokumen", group="Documents")
_register("dokumen.tanggaldokumen", "Document Date", Relation.DOCUMENT, "tanggaldokumen", D, group="Documents")
_register("dokumen.kodefasilitas", "Facility Code", Relation.DOCUMENT, "kodefasilitas", group="Documents")
_register("dokumen.namafasilitas", "Facility Name", Relation.DOCUMENT, "namafasilitas", group="Documents")

# Duties (bc20_pungutan)
_register("pungutan.keterangan", "Tax Type", Relation.DUTY, "keterangan", group="Duties")
_register("pungutan.dibayar", "Tax Amount Paid", Relation.DUTY, "dibayar", N, group="Duties")

# Calculated
_register(
    "calculated.gross_weight_per_teus", "Gross Weight per TEUS", Relation.CALCULATED,
    "gross_weight_per_teus", N, group="Calculated",
)
_register("calculated.items_count", "Goods Count", Relation.CALCULATED, "items_count", N, group="Calculated")
_register("calculated.total_paid", "Total Paid", Relation.CALCULATED, "total_paid", N, group="Calculated")


FIELD_REGISTRY = FieldRegistry(_FIELDS, _ALIASES)


def resolve(name: str) -> FieldDescriptor:
    """Resolve a field name against the process-wide registry."""
    return FIELD_REGISTRY.resolve(name)
