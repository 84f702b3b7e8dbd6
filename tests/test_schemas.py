import uuid

import pydantic
import pytest

from storefront.schemas.contact import ContactInfo
from storefront.schemas.customer import CustomerCreate, CustomerUpdate
from storefront.schemas.order import OrderCreate


def test_contact_email_is_trimmed_before_validation():
    contact = ContactInfo(name="Ayesha", email="  ayesha@example.com ")

    assert contact.email == "ayesha@example.com"


@pytest.mark.parametrize("email", ["not-an-email", "two@@x.com", "missing-domain@"])
def test_malformed_contact_email_is_rejected(email):
    with pytest.raises(pydantic.ValidationError):
        ContactInfo(name="Ayesha", email=email)


def test_order_contact_email_is_validated():
    with pytest.raises(pydantic.ValidationError):
        OrderCreate(
            product_id=uuid.uuid4(),
            contact={"name": "Zara", "email": "zara at example"},
            quantity=1,
        )


def test_customer_create_rejects_malformed_email():
    with pytest.raises(pydantic.ValidationError):
        CustomerCreate(name="Zara", email="zara.example.com")


def test_customer_update_accepts_empty_email_to_clear_it():
    update = CustomerUpdate(email="")

    assert update.email == ""
    assert update.to_contact().email == ""


def test_customer_update_omitted_email_stays_unset():
    assert CustomerUpdate(name="Zara").to_contact().email is None
