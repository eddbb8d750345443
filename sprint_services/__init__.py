# sprint_services/__init__.py

"""
Các dịch vụ bao quanh core: cấu hình, kho hồ sơ, cập nhật tiến độ,
điều tiết API và phân tích lịch sử bằng AI.
"""
