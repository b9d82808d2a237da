"""
Static material catalog — compositions and default unit prices (R$).

Keyed by material key, compositions addressed by their position in the list.
Users override unit prices per composition (see prices.py); the catalog
itself is never mutated. Every helper below returns fresh objects.

Prices: SINAPI-style market averages used as the out-of-the-box defaults.
"""

from typing import Dict, List

from pydantic import BaseModel


class PriceItem(BaseModel):
    material_key: str
    composition_index: int
    composition_name: str
    unit: str
    unit_price: float
    default_price: float


# category: 'material' | 'auxiliary' | 'labor'
MATERIALS = {
    "concrete": {
        "name": "Concreto Armado",
        "base_unit": "m³",
        "compositions": [
            {"name": "Cimento CP-32", "unit": "saco 50kg", "consumption": 7, "unit_price": 28.0, "category": "material"},
            {"name": "Areia média", "unit": "m³", "consumption": 0.64, "unit_price": 85.0, "category": "material"},
            {"name": "Brita 1", "unit": "m³", "consumption": 0.64, "unit_price": 95.0, "category": "material"},
            {"name": "Aço CA-50", "unit": "kg", "consumption": 120, "unit_price": 8.5, "category": "material"},
            {"name": "Madeira para forma", "unit": "m²", "consumption": 4, "unit_price": 25.0, "category": "auxiliary"},
            {"name": "Arame recozido", "unit": "kg", "consumption": 2, "unit_price": 12.0, "category": "auxiliary"},
        ],
    },
    "brick": {
        "name": "Alvenaria de Tijolos",
        "base_unit": "m²",
        "compositions": [
            {"name": "Tijolo cerâmico 6 furos", "unit": "unidade", "consumption": 55, "unit_price": 1.2, "category": "material"},
            {"name": "Argamassa de assentamento", "unit": "m³", "consumption": 0.018, "unit_price": 280.0, "category": "material"},
            {"name": "Argamassa de revestimento", "unit": "m³", "consumption": 0.025, "unit_price": 320.0, "category": "auxiliary"},
        ],
    },
    "paint": {
        "name": "Pintura",
        "base_unit": "m²",
        "compositions": [
            {"name": "Tinta acrílica", "unit": "litro", "consumption": 0.25, "unit_price": 45.0, "category": "material"},
            {"name": "Selador acrílico", "unit": "litro", "consumption": 0.15, "unit_price": 35.0, "category": "auxiliary"},
            {"name": "Massa corrida PVA", "unit": "kg", "consumption": 1.2, "unit_price": 8.0, "category": "auxiliary"},
            {"name": "Lixa para parede", "unit": "folha", "consumption": 0.5, "unit_price": 3.5, "category": "auxiliary"},
        ],
    },
    "ceramic": {
        "name": "Revestimento Cerâmico",
        "base_unit": "m²",
        "compositions": [
            {"name": "Cerâmica 45x45cm", "unit": "m²", "consumption": 1.1, "unit_price": 35.0, "category": "material"},
            {"name": "Argamassa colante AC-I", "unit": "kg", "consumption": 4.5, "unit_price": 1.8, "category": "auxiliary"},
            {"name": "Rejunte", "unit": "kg", "consumption": 0.8, "unit_price": 25.0, "category": "auxiliary"},
            {"name": "Espaçador plástico", "unit": "pç", "consumption": 15, "unit_price": 0.15, "category": "auxiliary"},
        ],
    },
    "wood": {
        "name": "Piso de Madeira",
        "base_unit": "m²",
        "compositions": [
            {"name": "Piso laminado", "unit": "m²", "consumption": 1.1, "unit_price": 85.0, "category": "material"},
            {"name": "Manta acústica", "unit": "m²", "consumption": 1.05, "unit_price": 12.0, "category": "auxiliary"},
            {"name": "Rodapé", "unit": "m", "consumption": 0.4, "unit_price": 15.0, "category": "auxiliary"},
            {"name": "Cola para piso", "unit": "kg", "consumption": 1.2, "unit_price": 18.0, "category": "auxiliary"},
        ],
    },
}


def price_key(material_key: str, composition_index: int) -> str:
    """Key of the effective price map: '<material_key>_<composition_index>'."""
    return f"{material_key}_{composition_index}"


def default_price_items() -> List[PriceItem]:
    """Every composition in catalog order, priced at its default."""
    items = []
    for material_key, material in MATERIALS.items():
        for index, composition in enumerate(material["compositions"]):
            items.append(PriceItem(
                material_key=material_key,
                composition_index=index,
                composition_name=composition["name"],
                unit=composition["unit"],
                unit_price=composition["unit_price"],
                default_price=composition["unit_price"],
            ))
    return items


def default_prices() -> Dict[str, float]:
    return {
        price_key(material_key, index): composition["unit_price"]
        for material_key, material in MATERIALS.items()
        for index, composition in enumerate(material["compositions"])
    }
