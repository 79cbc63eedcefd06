"""
Worker 프로세스

테넌트별 Reconciliation Monitor(auto-sync) 실행.
"""
