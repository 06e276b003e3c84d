"""Clinic Scheduler - weekly availability, slot resolution and appointment booking"""
