from lytspot_outbox.http.transport import DeliveryResult, HttpTransport

__all__ = ["DeliveryResult", "HttpTransport"]
