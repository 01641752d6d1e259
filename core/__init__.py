"""Core application for the Juan Heart clinical API.

Holds the models, services, serializers, views and route registrations
for assessments, referrals, facilities, appointments, educational
content, notifications and the mobile sync endpoints.
"""
