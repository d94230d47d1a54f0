"""Driver management: CRUD with plan limits, compliance overview and CSV import"""
