"""Proposals and invoices"""
