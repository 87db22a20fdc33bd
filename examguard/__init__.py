"""
ExamGuard - Continuous integrity decisions for browser-proctored exams
"""

__version__ = "1.0.0"
