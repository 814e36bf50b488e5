"""
Application services layer.

Services orchestrate business operations using repositories and the content
source. Import concrete services from their modules; this package stays
import-light because repositories depend on services.errors.
"""
