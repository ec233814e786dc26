"""Browser sign-in and token capture."""
