"""Validation of the billing identity required before a paid plan starts."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from ..domain.errors import IdentityInvalidError
from ..domain.models import Account, Address
from ..domain.ports.persistence import IdentityPatch

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
NATIONAL_ID_MIN_LENGTH = 5


class BillingIdentityValidator:
    """Normalizes national id, phone and address into an account patch."""

    def build_patch(
        self,
        account: Account,
        national_id: Optional[str],
        phone: Optional[str],
        address: Optional[Mapping[str, Any]],
    ) -> IdentityPatch:
        """
        Validate the supplied identity against what the account already stores.

        A field may be omitted only when the account already has it. Supplied
        fields are always validated, but stored values are never replaced.

        Raises:
            IdentityInvalidError: If a field is missing or malformed
        """
        current = account.billing_identity
        patch = IdentityPatch()

        if national_id is not None or not current.national_id:
            cleaned_id = self.normalize_national_id(national_id)
            if not current.national_id:
                patch.national_id = cleaned_id

        if phone is not None or not current.phone:
            cleaned_phone = self.normalize_phone(phone)
            if not current.phone:
                patch.phone = cleaned_phone

        has_address = current.address is not None and current.address.is_filled()
        if address is not None or not has_address:
            cleaned_address = self.normalize_address(address)
            if not has_address:
                patch.address = cleaned_address

        return patch

    @staticmethod
    def normalize_national_id(value: Optional[str]) -> str:
        if not isinstance(value, str) or len(value.strip()) < NATIONAL_ID_MIN_LENGTH:
            raise IdentityInvalidError("national_id", "national_id is required and must be valid")
        return value.strip()

    @staticmethod
    def normalize_phone(value: Optional[str]) -> str:
        cleaned = value.strip() if isinstance(value, str) else ""
        if not PHONE_PATTERN.match(cleaned):
            raise IdentityInvalidError("phone", "phone is required and must be valid")
        return cleaned

    @staticmethod
    def normalize_address(value: Optional[Mapping[str, Any]]) -> Address:
        if not isinstance(value, Mapping):
            raise IdentityInvalidError(
                "address", "address is required (include at least street, city, country)"
            )

        def _clean(key: str) -> Optional[str]:
            raw = value.get(key)
            if raw is None:
                return None
            text = str(raw).strip()
            return text or None

        address = Address(
            street=_clean("street"),
            city=_clean("city"),
            state=_clean("state"),
            zip_code=_clean("zip_code"),
            country=_clean("country"),
        )
        if not address.is_filled():
            raise IdentityInvalidError(
                "address", "address is required (include at least street, city, country)"
            )
        return address
