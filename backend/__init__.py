"""x420 demo service and middleware package."""
