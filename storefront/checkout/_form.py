"""
Shipping form — validated before it can reach ``submit``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

import pydantic
from kungfu import Error, Ok, Result
from pydantic import BaseModel, ConfigDict, StringConstraints

from storefront.checkout._address import AddressCascade, Region
from storefront.errors import InvalidShippingFormError

PHONE_PATTERN = r"^[0-9]{10,11}$"

_MESSAGES: Mapping[str, str] = {
    "street": "Please enter the street address",
    "phone": "Please enter a valid phone number (10-11 digits)",
    "province": "Please choose a province",
    "district": "Please choose a district",
    "ward": "Please choose a ward",
}


class ShippingForm(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    phone: Annotated[str, StringConstraints(strip_whitespace=True, pattern=PHONE_PATTERN)]
    province: Region
    district: Region
    ward: Region
    note: str = ""

    @property
    def address(self) -> str:
        """Street line followed by ward, district and province names."""
        return f"{self.street}, {self.ward.name}, {self.district.name}, {self.province.name}"

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> Result[ShippingForm, InvalidShippingFormError]:
        try:
            return Ok(cls.model_validate(dict(data)))
        except pydantic.ValidationError as exc:
            fields: dict[str, str] = {}
            for err in exc.errors():
                field = str(err["loc"][0]) if err["loc"] else "form"
                fields.setdefault(field, _MESSAGES.get(field, err["msg"]))
            return Error(InvalidShippingFormError(fields))

    @classmethod
    def from_cascade(
        cls,
        cascade: AddressCascade,
        *,
        street: str,
        phone: str,
        note: str = "",
    ) -> Result[ShippingForm, InvalidShippingFormError]:
        return cls.parse({
            "street": street,
            "phone": phone,
            "province": cascade.province,
            "district": cascade.district,
            "ward": cascade.ward,
            "note": note,
        })


__all__ = ("ShippingForm", "PHONE_PATTERN")
