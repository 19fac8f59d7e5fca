"""Reference codes used across the BC20 customs tables."""

# kodeentitas role codes on bc20_entitas
ENTITY_ROLES = {
    "importir": "1",
    "ppjk": "4",
    "pemilik": "7",
    "pengirim": "9",
    "penjual": "10",
}

# Customs route (jalur) codes on bc20_header.kodejalur
ROUTE_CODES = {
    "H": "Hijau",
    "K": "Kuning",
    "M": "Merah",
    "P": "Prioritas",
}

# Container size code -> twenty-foot equivalent units
TEUS_BY_SIZE = {
    "20": 1.0,
    "40": 2.0,
    "45": 2.25,
    "60": 3.0,
}

# Charge types shown in displays and exports, with their flat-export sequence
RECOGNIZED_DUTIES = {
    "BM": 1,
    "PPH": 2,
    "PPN": 3,
}


def teus_for_size(size_code) -> float:
    """TEUS for a container size code; unknown sizes count as zero."""
    if size_code is None:
        return 0.0
    return TEUS_BY_SIZE.get(str(size_code).strip(), 0.0)
