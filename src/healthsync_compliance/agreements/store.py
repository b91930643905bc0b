"""Agreement store boundary."""
from abc import ABC, abstractmethod
from datetime import datetime

from healthsync_compliance.agreements.models import AgreementStatus, BusinessAssociateAgreement


class AgreementStore(ABC):
    """
    Persistence for agreements and their per-version snapshots.
    
    `update` is last-write-wins; no version check is performed.
    """
    
    @abstractmethod
    async def create(self, agreement: BusinessAssociateAgreement) -> BusinessAssociateAgreement:
        ...
    
    @abstractmethod
    async def get(self, agreement_id: str) -> BusinessAssociateAgreement | None:
        ...
    
    @abstractmethod
    async def update(self, agreement: BusinessAssociateAgreement) -> BusinessAssociateAgreement:
        ...
    
    @abstractmethod
    async def list_expiring(self, before: datetime) -> list[BusinessAssociateAgreement]:
        """Non-terminal, non-expired agreements expiring on or before `before`."""
    
    @abstractmethod
    async def get_versions(self, agreement_id: str) -> list[BusinessAssociateAgreement]:
        """All stored snapshots, oldest version first."""
    
    @abstractmethod
    async def get_version(self, agreement_id: str, version: int) -> BusinessAssociateAgreement | None:
        ...


class InMemoryAgreementStore(AgreementStore):
    """In-memory agreement store for development and tests."""
    
    def __init__(self):
        self._agreements: dict[str, BusinessAssociateAgreement] = {}
        self._versions: dict[str, dict[int, BusinessAssociateAgreement]] = {}
    
    def _snapshot(self, agreement: BusinessAssociateAgreement) -> BusinessAssociateAgreement:
        stored = agreement.model_copy(deep=True)
        self._agreements[stored.id] = stored
        self._versions.setdefault(stored.id, {})[stored.version] = stored.model_copy(deep=True)
        return stored.model_copy(deep=True)
    
    async def create(self, agreement: BusinessAssociateAgreement) -> BusinessAssociateAgreement:
        if agreement.id in self._agreements:
            raise ValueError(f"Agreement already exists: {agreement.id}")
        return self._snapshot(agreement)
    
    async def get(self, agreement_id: str) -> BusinessAssociateAgreement | None:
        agreement = self._agreements.get(agreement_id)
        return agreement.model_copy(deep=True) if agreement else None
    
    async def update(self, agreement: BusinessAssociateAgreement) -> BusinessAssociateAgreement:
        if agreement.id not in self._agreements:
            raise KeyError(agreement.id)
        return self._snapshot(agreement)
    
    async def list_expiring(self, before: datetime) -> list[BusinessAssociateAgreement]:
        open_statuses = (AgreementStatus.PENDING, AgreementStatus.ACTIVE)
        return [
            a.model_copy(deep=True)
            for a in sorted(self._agreements.values(), key=lambda a: a.expiration_date)
            if a.status in open_statuses and a.expiration_date <= before
        ]
    
    async def get_versions(self, agreement_id: str) -> list[BusinessAssociateAgreement]:
        versions = self._versions.get(agreement_id, {})
        return [versions[v].model_copy(deep=True) for v in sorted(versions)]
    
    async def get_version(self, agreement_id: str, version: int) -> BusinessAssociateAgreement | None:
        snapshot = self._versions.get(agreement_id, {}).get(version)
        return snapshot.model_copy(deep=True) if snapshot else None
