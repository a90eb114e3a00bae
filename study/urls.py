from django.urls import path
from . import views

urlpatterns = [
    # Review
    path('api/review/<int:pk>/', views.review_card, name='review_card'),
    path('api/enroll/<int:pk>/', views.enroll_card, name='enroll_card'),
    path('api/unenroll/<int:pk>/', views.unenroll_card, name='unenroll_card'),

    # Session
    path('api/due/', views.due_cards, name='due_cards'),
    path('api/next/', views.next_card, name='next_card'),
    path('api/progress/', views.learning_progress, name='learning_progress'),
    path('api/history/', views.study_history, name='study_history'),

    # Statistics
    path('api/stats/', views.stats, name='stats'),
    path('api/performance/', views.overall_performance, name='overall_performance'),
    path('api/performance/contest/<int:pk>/', views.contest_performance, name='contest_performance'),
    path('api/performance/topic/<int:pk>/', views.topic_performance, name='topic_performance'),
    path('api/performance/subtopic/<int:pk>/', views.subtopic_performance, name='subtopic_performance'),
    path('api/performance/compare/', views.compare_performance, name='compare_performance'),
    path('api/insights/', views.study_insights, name='study_insights'),

    # Health check
    path('health/', views.health_check, name='health_check'),
]
