from django.contrib import admin

from scheduling.models import (
    Booking,
    ClosureDate,
    Event,
    Location,
    Order,
    OrderItem,
    Product,
    RecurringTemplate,
    Student,
    Term,
)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


class BookingInline(admin.TabularInline):
    model = Booking
    extra = 0
    fields = ["student", "status", "starts_at", "ends_at"]
    readonly_fields = ["starts_at", "ends_at"]


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ["name", "address", "capacity", "is_active"]
    list_filter = ["is_active"]
    search_fields = ["name", "address"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "type", "session_window_policy", "event_capacity", "is_active"]
    list_filter = ["type", "is_active"]
    search_fields = ["name"]


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ["name", "birthdate"]
    search_fields = ["name"]


@admin.register(Term)
class TermAdmin(admin.ModelAdmin):
    list_display = ["name", "start_date", "end_date"]


@admin.register(ClosureDate)
class ClosureDateAdmin(admin.ModelAdmin):
    list_display = ["name", "recurring", "month", "day", "date"]
    list_filter = ["recurring"]


@admin.register(RecurringTemplate)
class RecurringTemplateAdmin(admin.ModelAdmin):
    list_display = ["name", "location", "start_time", "end_time", "capacity", "is_active"]
    list_filter = ["location", "is_active"]
    search_fields = ["name"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "type", "status", "starts_at", "location", "current_count", "capacity"]
    list_filter = ["status", "type", "location"]
    search_fields = ["title"]
    # Counts change only through the capacity ledger.
    readonly_fields = ["current_count"]
    inlines = [BookingInline]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["customer_name", "customer_email", "status", "total_amount", "created_at"]
    list_filter = ["status"]
    search_fields = ["customer_email", "customer_name", "payment_ref"]
    inlines = [OrderItemInline]


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ["student", "product", "service_date", "status", "event"]
    list_filter = ["status", "product"]
    search_fields = ["student__name"]
