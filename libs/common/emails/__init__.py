"""
Email package.

- core: ``send_email`` over SMTP

Templates live in services/communications_service/templates/.
"""
