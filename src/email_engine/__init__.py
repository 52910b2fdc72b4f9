# Email Engine
"""
Lead capture and email delivery modules:
- providers: ESP adapters (SendGrid, MailerLite, Brevo, Mailchimp, custom) and registry
- dispatcher: local lead capture and dispatch to the active provider
"""
