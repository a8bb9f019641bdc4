"""
Konfiguracja logowania - filtruje częste requesty do /health i /api/rooms
"""
import logging


class PollingEndpointFilter(logging.Filter):
    """
    Filtr który ukrywa logi requestów GET do /health oraz /api/rooms/{code}
    """
    def filter(self, record):
        message = record.getMessage()
        if 'GET /health ' in message:
            return False
        if 'GET /api/rooms/' in message:
            return False
        return True


def setup_logging():
    """
    Konfiguruje logowanie z filtrem dla endpointów odpytywanych w pętli
    """
    uvicorn_access = logging.getLogger("uvicorn.access")

    polling_filter = PollingEndpointFilter()

    # Dodaj filtr do wszystkich handlerów
    for handler in uvicorn_access.handlers:
        handler.addFilter(polling_filter)

    print("✅ Logging config: requesty do /health i /api/rooms są ukryte")
