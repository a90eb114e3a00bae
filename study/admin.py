from django.contrib import admin
from .models import Card, Contest, ContestTopic, ReviewEvent, ReviewRecord, Subtopic, Topic


class ContestTopicInline(admin.TabularInline):
    model = ContestTopic
    extra = 1
    fields = ['topic', 'priority']


class CardInline(admin.TabularInline):
    model = Card
    extra = 1
    fields = ['front', 'back', 'difficulty']


@admin.register(Contest)
class ContestAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'target_date', 'created_at']
    list_filter = ['owner', 'created_at']
    search_fields = ['name', 'description']
    inlines = [ContestTopicInline]


@admin.register(Topic)
class TopicAdmin(admin.ModelAdmin):
    list_display = ['name', 'subtopic_count', 'created_at']
    search_fields = ['name', 'description']

    def subtopic_count(self, obj):
        return obj.subtopics.count()
    subtopic_count.short_description = 'Subtopics'


@admin.register(Subtopic)
class SubtopicAdmin(admin.ModelAdmin):
    list_display = ['name', 'topic', 'priority', 'card_count']
    list_filter = ['topic']
    search_fields = ['name', 'description']
    inlines = [CardInline]

    def card_count(self, obj):
        return obj.cards.count()
    card_count.short_description = 'Cards'


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ['front_preview', 'subtopic', 'difficulty', 'created_at']
    list_filter = ['subtopic__topic', 'difficulty']
    search_fields = ['front', 'back']

    def front_preview(self, obj):
        return obj.front[:50] + '...' if len(obj.front) > 50 else obj.front
    front_preview.short_description = 'Front'


@admin.register(ReviewRecord)
class ReviewRecordAdmin(admin.ModelAdmin):
    list_display = ['user', 'card', 'status', 'next_due_at', 'ease_factor', 'repetitions', 'interval_days']
    list_filter = ['status', 'contest']
    readonly_fields = ['repetitions', 'ease_factor', 'interval_days', 'next_due_at', 'status',
                       'correct_streak', 'incorrect_streak', 'total_correct', 'total_incorrect',
                       'last_reviewed_at', 'version']


@admin.register(ReviewEvent)
class ReviewEventAdmin(admin.ModelAdmin):
    list_display = ['user', 'card', 'quality', 'correct', 'interval_days', 'reviewed_at']
    list_filter = ['correct', 'quality', 'reviewed_at']
    readonly_fields = ['user', 'card', 'contest', 'subtopic', 'quality', 'correct', 'repetitions',
                       'ease_factor', 'interval_days', 'response_time', 'reviewed_at']

    def has_change_permission(self, request, obj=None):
        return False
