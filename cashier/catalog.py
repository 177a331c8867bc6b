from aws_config import MENU_TABLE, USERS_TABLE

from .exceptions import store_errors


class MenuCatalog:
    """Read-only menu definitions: which ingredients one portion uses."""

    def __init__(self, ddb, table=MENU_TABLE):
        self.ddb = ddb
        self.table = table

    def required_ingredients(self, menu_item_id):
        """
        Return [{ingredient_id, quantity_per_unit}] for a menu item, or an
        empty list when the item is unknown or carries no ingredient tracking.
        """
        with store_errors("read menu"):
            menu_item = self.ddb.get(self.table, {"menu_item_id": menu_item_id}, consistent=False)
        return menu_item.get("required_ingredients") or []


class CustomerDirectory:
    """Cashier/customer profiles stored in the Users table."""

    def __init__(self, ddb, table=USERS_TABLE):
        self.ddb = ddb
        self.table = table

    def get(self, user_id):
        with store_errors("read customer"):
            return self.ddb.get(self.table, {"user_id": user_id}, consistent=False)
