"""E-mail alerts for newly available Python package versions."""
