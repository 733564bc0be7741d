"""Billing application for the HMS backend.

This package turns a visit's billable events (consultation, dispensed
medicines, completed lab tests) into a GST-compliant bill, and records
payments against it.
"""
