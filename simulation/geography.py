"""Static airport table used for spawn locations and route planning."""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import numpy as np

Coordinates = Tuple[float, float]  # (latitude, longitude)


@dataclass(frozen=True)
class Airport:
    """Named location with coordinates."""

    name: str
    coordinates: Coordinates

    @property
    def code(self) -> str:
        """IATA code taken from the trailing parentheses of the name."""
        if self.name.endswith(")") and "(" in self.name:
            return self.name[self.name.rindex("(") + 1:-1]
        return self.name


WORLD_AIRPORTS: List[Airport] = [
    # Europe
    Airport("Frankfurt am Main (FRA)", (50.0379, 8.5622)),
    Airport("München (MUC)", (48.3537, 11.7751)),
    Airport("Berlin Brandenburg (BER)", (52.3667, 13.5033)),
    Airport("London Heathrow (LHR)", (51.4700, -0.4543)),
    Airport("Paris Charles de Gaulle (CDG)", (49.0097, 2.5479)),
    Airport("Amsterdam Schiphol (AMS)", (52.3086, 4.7639)),
    Airport("Madrid Barajas (MAD)", (40.4719, -3.5626)),
    Airport("Rome Fiumicino (FCO)", (41.8003, 12.2389)),
    Airport("Zürich (ZUR)", (47.4647, 8.5492)),
    Airport("Vienna (VIE)", (48.1103, 16.5697)),
    # North America
    Airport("New York JFK (JFK)", (40.6413, -73.7781)),
    Airport("Los Angeles (LAX)", (33.9425, -118.4081)),
    Airport("Chicago O'Hare (ORD)", (41.9742, -87.9073)),
    Airport("Miami (MIA)", (25.7617, -80.1918)),
    Airport("Toronto Pearson (YYZ)", (43.6777, -79.6248)),
    Airport("Vancouver (YVR)", (49.1967, -123.1815)),
    Airport("San Francisco (SFO)", (37.6213, -122.3790)),
    Airport("Denver (DEN)", (39.8561, -104.6737)),
    Airport("Atlanta (ATL)", (33.6407, -84.4277)),
    Airport("Seattle (SEA)", (47.4502, -122.3088)),
    # Asia
    Airport("Tokyo Haneda (HND)", (35.5494, 139.7798)),
    Airport("Tokyo Narita (NRT)", (35.7720, 140.3929)),
    Airport("Beijing Capital (PEK)", (40.0799, 116.6031)),
    Airport("Shanghai Pudong (PVG)", (31.1443, 121.8083)),
    Airport("Hong Kong (HKG)", (22.3080, 113.9185)),
    Airport("Singapore Changi (SIN)", (1.3644, 103.9915)),
    Airport("Seoul Incheon (ICN)", (37.4602, 126.4407)),
    Airport("Bangkok Suvarnabhumi (BKK)", (13.6900, 100.7501)),
    Airport("Kuala Lumpur (KUL)", (2.7456, 101.7072)),
    Airport("Mumbai (BOM)", (19.0896, 72.8656)),
    Airport("Delhi (DEL)", (28.5562, 77.1000)),
    Airport("Dubai (DXB)", (25.2532, 55.3657)),
    Airport("Doha (DOH)", (25.2731, 51.6080)),
    # Australia & Oceania
    Airport("Sydney Kingsford Smith (SYD)", (-33.9399, 151.1753)),
    Airport("Melbourne (MEL)", (-37.6690, 144.8410)),
    Airport("Brisbane (BNE)", (-27.3942, 153.1218)),
    Airport("Perth (PER)", (-31.9403, 115.9669)),
    Airport("Auckland (AKL)", (-37.0082, 174.7850)),
    # South America
    Airport("São Paulo Guarulhos (GRU)", (-23.4356, -46.4731)),
    Airport("Rio de Janeiro Galeão (GIG)", (-22.8070, -43.2435)),
    Airport("Buenos Aires Ezeiza (EZE)", (-34.8222, -58.5358)),
    Airport("Lima Jorge Chávez (LIM)", (-12.0219, -77.1143)),
    Airport("Bogotá El Dorado (BOG)", (4.7016, -74.1469)),
    Airport("Santiago (SCL)", (-33.3927, -70.7854)),
    # Africa
    Airport("Johannesburg OR Tambo (JNB)", (-26.1367, 28.2411)),
    Airport("Cape Town (CPT)", (-33.9648, 18.6017)),
    Airport("Cairo (CAI)", (30.1219, 31.4056)),
    Airport("Lagos (LOS)", (6.5774, 3.3210)),
    Airport("Casablanca (CMN)", (33.3675, -7.5398)),
    Airport("Nairobi (NBO)", (-1.3192, 36.9278)),
]


def find_airport(name_or_code: str, airports: Optional[List[Airport]] = None) -> Optional[Airport]:
    """Look up an airport by full name or IATA code."""
    airports = airports if airports is not None else WORLD_AIRPORTS
    for airport in airports:
        if airport.name == name_or_code or airport.code == name_or_code:
            return airport
    return None


def random_airport(rng: Optional[np.random.Generator] = None,
                   airports: Optional[List[Airport]] = None) -> Airport:
    """Pick a spawn location uniformly at random."""
    rng = rng if rng is not None else np.random.default_rng()
    airports = airports if airports is not None else WORLD_AIRPORTS
    return airports[int(rng.integers(0, len(airports)))]
