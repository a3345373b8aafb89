"""Hospital administration app.

Tenants (hospitals), their staff accounts, patients, appointments,
campaigns, WhatsApp reminders and patient analytics behind a JSON API.
"""
