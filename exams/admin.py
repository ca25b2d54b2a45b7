from django.contrib import admin
from .models import (
    AuditLog, Exam, ExamAnswer, ExamAttempt, ExamQuestion, ExamSection, ExamVersion, QuestionOption
)


class ExamVersionInline(admin.TabularInline):
    model = ExamVersion
    extra = 0
    fields = ['version', 'total_points', 'created_at']
    readonly_fields = ['created_at']


class ExamSectionInline(admin.TabularInline):
    model = ExamSection
    extra = 1
    fields = ['order', 'title', 'description']


class QuestionOptionInline(admin.TabularInline):
    model = QuestionOption
    extra = 2
    fields = ['order', 'text', 'is_correct']


class ExamAnswerInline(admin.TabularInline):
    model = ExamAnswer
    extra = 0
    readonly_fields = [
        'question', 'text_value', 'selected_option_ids', 'structured_value',
        'points_earned', 'is_correct', 'feedback', 'manually_graded', 'graded_at'
    ]
    can_delete = False


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'is_active', 'is_public', 'max_attempts', 'time_limit', 'passing_score', 'auto_grade', 'created_at']
    list_filter = ['is_active', 'is_public', 'auto_grade', 'show_results']
    search_fields = ['title', 'slug', 'description']
    prepopulated_fields = {'slug': ('title',)}
    inlines = [ExamVersionInline]
    readonly_fields = ['created_at', 'updated_at']
    fieldsets = (
        (None, {'fields': ('title', 'slug', 'description', 'is_active', 'is_public')}),
        ('Attempts', {'fields': ('max_attempts', 'time_limit', 'shuffle_questions', 'shuffle_options')}),
        ('Grading & Results', {'fields': ('passing_score', 'auto_grade', 'show_results', 'allow_review')}),
        ('Metadata', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )


@admin.register(ExamVersion)
class ExamVersionAdmin(admin.ModelAdmin):
    list_display = ['exam', 'version', 'total_points', 'created_at']
    list_filter = ['exam']
    inlines = [ExamSectionInline]


@admin.register(ExamQuestion)
class ExamQuestionAdmin(admin.ModelAdmin):
    list_display = ['id', 'section', 'type', 'text_preview', 'points', 'order']
    list_filter = ['type', 'section__version__exam']
    search_fields = ['text']
    inlines = [QuestionOptionInline]

    def text_preview(self, obj):
        return obj.text[:50] + '...' if len(obj.text) > 50 else obj.text
    text_preview.short_description = 'Question'


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ['id', 'identity_key', 'exam', 'attempt_number', 'score', 'max_score', 'passed', 'started_at', 'completed_at']
    list_filter = ['passed', 'auto_graded', 'manually_graded', 'exam']
    search_fields = ['identity_key', 'student_name', 'student_email', 'exam__title']
    inlines = [ExamAnswerInline]
    readonly_fields = ['exam_version', 'layout', 'started_at', 'completed_at', 'time_spent', 'ip_address', 'user_agent']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'actor', 'event_type', 'description', 'ip_address']
    list_filter = ['event_type', 'created_at']
    search_fields = ['actor', 'description', 'ip_address']
    readonly_fields = ['actor', 'event_type', 'description', 'ip_address', 'user_agent', 'metadata', 'created_at']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
