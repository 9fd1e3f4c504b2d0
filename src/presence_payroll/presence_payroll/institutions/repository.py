from __future__ import annotations

from typing import Optional, Protocol

from .model import InstitutionSettings


class InstitutionRepository(Protocol):
    def get_settings(self, tenant_id: int) -> Optional[InstitutionSettings]:
        raise NotImplementedError

    def save_settings(self, settings: InstitutionSettings) -> None:
        raise NotImplementedError
