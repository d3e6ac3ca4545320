"""
Catalog error taxonomy.

  CatalogConflictError  - a uniqueness constraint rejected an insert; callers
                          resolve it by looking up and reusing the winner.
  CatalogPushError      - a push stage failed; the whole push was rolled back.
  StoreNotFoundError    - a request addressed a store external id we never saw.
"""


class CatalogError(Exception):
    """Base class for catalog errors."""


class CatalogConflictError(CatalogError):
    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} already exists: {key}")


class CatalogPushError(CatalogError):
    """A stage of a catalog push failed and the transaction was rolled back."""

    STAGES = {
        "store_upsert": "STORE_UPSERT_FAILED",
        "category_upsert": "CATEGORY_UPSERT_FAILED",
        "tax_upsert": "TAX_UPSERT_FAILED",
        "product_upsert": "PRODUCT_UPSERT_FAILED",
    }

    def __init__(self, stage: str, message: str):
        if stage not in self.STAGES:
            raise ValueError(f"Unknown push stage: {stage}")
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")

    @property
    def code(self) -> str:
        return self.STAGES[self.stage]


class StoreNotFoundError(CatalogError):
    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(f"Store not found: {external_id}")
