from __future__ import annotations

from pydantic import ConfigDict

from embedlam.core.models.base import AppBaseModel


class ProviderRead(AppBaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    label: str
    dimensions: int | None


class ValueTypeRead(AppBaseModel):
    value: str
    label: str
