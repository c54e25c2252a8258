"""
Airbnb Listings Price Report
============================

Exploratory analysis and log-price regression for a static Airbnb listings CSV.

Modules:
    - data_loader: CSV ingestion and validation
    - eda: Exploratory Data Analysis (Phase 1)
    - preprocessing: Cleaning and design matrix preparation (Phase 2)
    - model: Linear regression, decision tree and random forest (Phase 3)
    - evaluation: Comparison table, residual plot and conclusion (Phase 4)
"""

__version__ = "1.0.0"
__author__ = "Listings Analytics Team"
