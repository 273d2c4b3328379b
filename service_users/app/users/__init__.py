"""
Users domain package.

Modules of interest:
- models: UserRecord, ValidationIssue, BulkOutcome and response models.
- validator: Pure field validation and normalisation of submitted records.
- coordinator: Bulk create and partial update against a repository, with
  per-item failure isolation.
"""
