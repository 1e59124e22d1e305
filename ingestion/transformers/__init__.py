"""
Per-source normalizers: raw provider records -> canonical records.
"""
