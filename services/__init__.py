"""Services for log analysis, history reconciliation and authentication"""
