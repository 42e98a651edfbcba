"""Appointments domain - invitations, booking, availability and call outcomes"""
