"""First-run welcome page and initial administrator bootstrap.

The page offers a one-time form to create the first administrator. The form is
only served to, and only accepted from, requests made on the server host
itself, and it is protected by a signed per-render state token held in a
short-lived cookie. Once an administrator exists the page becomes a pointer to
the admin console.
"""
