"""
Landed Cost Estimator Package

Landed-cost and multi-tier resale pricing for bulk commodity export shipments.
Resolves a container estimate using Procurement → Invoice → Importer → Distributor → Retailer
pipeline with proportional per-product allocation.
"""

__version__ = "1.0.0"
