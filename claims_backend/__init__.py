"""
Claims Platform Backend

Healthcare-insurance claims management: patient cases, documents, case chat,
activity auditing and AI-assisted document review for doctors, admins and
system administrators.
"""

__version__ = "1.0.0"
