import threading

from django.apps import AppConfig


class CashierConfig(AppConfig):
    name = "cashier"
    verbose_name = "Snap cashier"

    services = None
    _services_lock = threading.Lock()

    def get_services(self):
        """Collaborators are built once per process, on first use."""
        if self.services is None:
            with self._services_lock:
                if self.services is None:
                    from .services import build_services
                    self.services = build_services()
        return self.services
