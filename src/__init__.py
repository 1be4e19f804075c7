"""
Travel Reimbursement Estimator
==============================

Estimates travel reimbursements from historical cases with
inverse-distance-weighted nearest neighbors.

Modules:
    - schemas: Immutable input, record and neighbor types
    - data_loader: Config and case-file ingestion and validation
    - preprocessing: Feature arrays and fixed-scale normalization
    - distance: Scaled Euclidean distance
    - model: Nearest-neighbor estimator
    - evaluation: Scoring against labelled cases
    - prediction: Single and batch estimates
"""

__version__ = "1.0.0"
__author__ = "Predictive Analytics Team"
