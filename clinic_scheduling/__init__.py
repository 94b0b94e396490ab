"""Appointment scheduling and availability resolution for multi-centre clinics."""
