"""
Workflows

Business rules for programs, applications/enrollments, assessments and users.
Each function takes the session and the resolved Caller and raises
CohortlyError subclasses on failure.
"""
