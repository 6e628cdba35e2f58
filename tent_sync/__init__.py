"""Download Transifex translations into a Tent content tree."""
