from django import forms

from .amounts import parse_amount
from .orders import DINE_IN, TAKE_AWAY

# accepted spellings of the fulfillment mode, all lower-cased without spaces
FULFILLMENT_ALIASES = {
    "dinein": DINE_IN,
    "dine_in": DINE_IN,
    "takeaway": TAKE_AWAY,
    "take_away": TAKE_AWAY,
}


def error_summary(form):
    """Flatten form errors into one readable line."""
    parts = []
    for field, errors in form.errors.get_json_data().items():
        messages = " ".join(e["message"] for e in errors)
        parts.append(messages if field == "__all__" else f"{field}: {messages}")
    return "; ".join(parts)


class SessionRequestForm(forms.Form):
    """
    Body of POST /getSnapToken.
    """
    # Midtrans caps order_id at 50 characters and a "-<13-digit millis>"
    # suffix is appended to this value
    orderId = forms.CharField(max_length=36)
    customerId = forms.CharField(max_length=128, required=False)
    customerDetails = forms.JSONField(required=False)
    items = forms.JSONField()
    fulfillmentMode = forms.CharField(max_length=32, required=False)

    # older clients send a boolean instead of fulfillmentMode
    takeaway = forms.BooleanField(required=False)

    def clean_customerDetails(self):
        details = self.cleaned_data.get("customerDetails")
        if details in (None, ""):
            return None
        if not isinstance(details, dict):
            raise forms.ValidationError("customerDetails must be an object.")

        name = details.get("first_name") or details.get("name")
        if not name:
            raise forms.ValidationError("customerDetails needs a name.")
        if not (details.get("email") or details.get("phone")):
            raise forms.ValidationError("customerDetails needs an email or phone.")

        customer = {"first_name": str(name)}
        for field in ("last_name", "email", "phone"):
            if details.get(field):
                customer[field] = str(details[field])
        return customer

    def clean_items(self):
        """
        Every line item needs an id, a positive whole quantity and a
        non-negative price.
        """
        raw = self.cleaned_data["items"]
        if not isinstance(raw, list) or not raw:
            raise forms.ValidationError("items must be a non-empty list.")

        items = []
        for position, entry in enumerate(raw, start=1):
            if not isinstance(entry, dict):
                raise forms.ValidationError(f"Item {position} must be an object.")

            item_id = entry.get("id")
            if item_id in (None, ""):
                raise forms.ValidationError(f"Item {position} has no id.")

            quantity = parse_amount(entry.get("quantity"))
            if quantity is None or quantity <= 0 or quantity != quantity.to_integral_value():
                raise forms.ValidationError(f"Item {position} needs a positive whole quantity.")

            price = parse_amount(entry.get("price"))
            if price is None or price < 0:
                raise forms.ValidationError(f"Item {position} needs a non-negative price.")

            items.append({
                "id": str(item_id),
                "name": str(entry.get("name") or item_id),
                "quantity": int(quantity),
                "price": price,
            })
        return items

    def clean_fulfillmentMode(self):
        mode = self.cleaned_data.get("fulfillmentMode")
        if not mode:
            return None
        key = mode.strip().lower().replace(" ", "")
        if key not in FULFILLMENT_ALIASES:
            raise forms.ValidationError(f"Unknown fulfillment mode '{mode}'.")
        return FULFILLMENT_ALIASES[key]

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get("customerId") and not cleaned.get("customerDetails") \
                and "customerDetails" not in self.errors:
            raise forms.ValidationError("Either customerId or customerDetails is required.")

        if not cleaned.get("fulfillmentMode"):
            cleaned["fulfillmentMode"] = TAKE_AWAY if cleaned.get("takeaway") else DINE_IN
        return cleaned


class NotificationForm(forms.Form):
    """
    Body of POST /midtrans-notification. Only the fields reconciliation
    relies on are declared; anything else in the payload is ignored.
    """
    order_id = forms.CharField(max_length=150)
    transaction_status = forms.CharField(max_length=32)
    transaction_id = forms.CharField(max_length=128)
    payment_type = forms.CharField(max_length=64)
    gross_amount = forms.CharField(max_length=32)
    va_numbers = forms.JSONField(required=False)

    def clean_gross_amount(self):
        amount = parse_amount(self.cleaned_data["gross_amount"])
        if amount is None or amount < 0:
            raise forms.ValidationError("gross_amount must be a non-negative number.")
        return amount

    def clean_va_numbers(self):
        va_numbers = self.cleaned_data.get("va_numbers")
        if va_numbers in (None, ""):
            return []
        if not isinstance(va_numbers, list):
            raise forms.ValidationError("va_numbers must be a list.")
        return va_numbers
