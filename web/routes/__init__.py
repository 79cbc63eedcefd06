"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- cash_movements: 현금 이동 기록/조회/역분개
- expenses: 지출 관리
- debts: 고객 채무 및 채무 결제
- cash: 실시간 잔고, 재고 평가
- exchange_rates: 환율 등록/조회
- daily_reports: 일일 리포트
- auto_sync: 주문 정합 루프 제어
"""
