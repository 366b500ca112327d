"""
Domain service: checkout form collection.

Turns the raw adopter details into a validated AdoptionRequest.
"""
import re
from typing import Optional

from treeadopt.domain.exceptions import ValidationError
from treeadopt.domain.models import (
    AdopterContact,
    AdoptionPlan,
    AdoptionRequest,
    GiftDetails,
    TreeListing,
)


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

REQUIRED_CONTACT_FIELDS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "phone": "Phone",
    "address": "Address",
}


def _clean_contact(contact: AdopterContact) -> AdopterContact:
    values = {field: (getattr(contact, field) or "").strip() for field in REQUIRED_CONTACT_FIELDS}
    for field, label in REQUIRED_CONTACT_FIELDS.items():
        if not values[field]:
            raise ValidationError(f"{label} is required")
    if not EMAIL_PATTERN.match(values["email"]):
        raise ValidationError("Email is not a valid address")
    return AdopterContact(**values)


def _clean_gift(gift: Optional[GiftDetails]) -> Optional[GiftDetails]:
    if gift is None:
        return None
    recipient = (gift.recipient_name or "").strip()
    if not recipient:
        raise ValidationError("Gift recipient name is required")
    message = (gift.message or "").strip() or None
    return GiftDetails(recipient_name=recipient, message=message)


def collect_adoption_request(
    tree: TreeListing,
    plan: AdoptionPlan,
    contact: AdopterContact,
    gift: Optional[GiftDetails] = None,
) -> AdoptionRequest:
    """
    Validate the checkout form and build the adoption request.

    Args:
        tree: The selected tree
        plan: The selected plan
        contact: Adopter contact details as entered
        gift: Gift details when the gift option is selected

    Returns:
        AdoptionRequest with trimmed fields

    Raises:
        ValidationError: Naming the first missing or malformed field
    """
    return AdoptionRequest(
        tree_id=tree.id,
        selected_plan=plan,
        adopter_contact=_clean_contact(contact),
        gift_details=_clean_gift(gift),
    )
