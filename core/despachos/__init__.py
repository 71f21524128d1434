# Nombre de archivo: __init__.py
# Ubicación de archivo: core/despachos/__init__.py
# Descripción: Dominio de despachos: ciclo de vida, búsqueda y difusión en tiempo real

from .broadcast import Broadcaster, DespachoEvent, Suscripcion
from .schemas import DespachoResponse, EstadoDespacho, FiltroDespachos, ResultadoBusqueda
from .search import InMemoryDespachoSearch, SqlDespachoSearch, TicketSearch
from .service import DespachoService
from .storage import DatabaseDespachoStorage, DespachoStorage, InMemoryDespachoStorage

__all__ = [
    "Broadcaster",
    "DatabaseDespachoStorage",
    "DespachoEvent",
    "DespachoResponse",
    "DespachoService",
    "DespachoStorage",
    "EstadoDespacho",
    "FiltroDespachos",
    "InMemoryDespachoSearch",
    "InMemoryDespachoStorage",
    "ResultadoBusqueda",
    "SqlDespachoSearch",
    "Suscripcion",
    "TicketSearch",
]
