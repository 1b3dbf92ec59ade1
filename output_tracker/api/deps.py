from fastapi import Depends, HTTPException, Request, status

from output_tracker.core.db.store import ProductionStore
from output_tracker.modules.production.production_service import ProductionService
from output_tracker.modules.reconciliation.reconciliation_service import ReconciliationService
from output_tracker.modules.targets.target_service import TargetService
from output_tracker.modules.targets.target_store import TargetStore
from output_tracker.shared.keyed_lock import KeyedLock


def get_store(request: Request) -> ProductionStore:
    """The store bound at startup (see main.lifespan)."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage is not initialized"
        )
    return store


def get_target_locks(request: Request) -> KeyedLock:
    locks = getattr(request.app.state, "target_locks", None)
    if locks is None:
        locks = request.app.state.target_locks = KeyedLock()
    return locks


def get_production_service(store: ProductionStore = Depends(get_store)) -> ProductionService:
    return ProductionService(store)


def get_target_service(store: ProductionStore = Depends(get_store)) -> TargetService:
    return TargetService(store)


def get_target_store(
    store: ProductionStore = Depends(get_store),
    locks: KeyedLock = Depends(get_target_locks),
) -> TargetStore:
    return TargetStore(store, locks=locks)


def get_reconciliation_service(store: ProductionStore = Depends(get_store)) -> ReconciliationService:
    return ReconciliationService(store)
