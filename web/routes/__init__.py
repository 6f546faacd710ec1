"""
API routes package

Router modules:
- health: health check
- dashboard: dashboard summary and transparency page
- ledger: ledger entries, monthly report, daily chart
- funding: funding requests and the approval workflow
"""
