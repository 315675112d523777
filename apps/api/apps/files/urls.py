"""
Files URLs - Order file upload pipeline
"""
from django.urls import path

from .views import OrderFileViewSet

file_list = OrderFileViewSet.as_view({'get': 'list'})
file_detail = OrderFileViewSet.as_view({'get': 'retrieve', 'delete': 'destroy'})
upload_url = OrderFileViewSet.as_view({'post': 'upload_url'})
process_upload = OrderFileViewSet.as_view({'post': 'process_upload'})

urlpatterns = [
    path('orders/<uuid:order_id>/files/', file_list, name='order-file-list'),
    path('orders/<uuid:order_id>/files/upload-url/', upload_url, name='order-file-upload-url'),
    path('orders/<uuid:order_id>/files/process-upload/', process_upload, name='order-file-process-upload'),
    path('orders/<uuid:order_id>/files/<uuid:pk>/', file_detail, name='order-file-detail'),
]
