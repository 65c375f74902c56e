"""Business Central data models.

These models map 1:1 to the OData pages published by Business Central for the
self-service portal. Python attribute names are snake_case; the alias of each
field is the exact ERP column name, so ``model_validate`` accepts raw ERP JSON
and ``model_dump(by_alias=True)`` produces an ERP payload.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer


# Decimals travel as JSON numbers, not strings
ERPDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# =============================================================================
# Base Models
# =============================================================================

class BCBaseModel(BaseModel):
    """Base model for BC OData payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ERPEntity(BCBaseModel):
    """A record of one entity set, carrying its concurrency token."""
    etag: Optional[str] = Field(None, alias="@odata.etag")


# =============================================================================
# Employees and Leave
# =============================================================================

class Employee(ERPEntity):
    """Employee card.

    Maps to: /Company('...')/Employees
    """
    no: Optional[str] = Field(None, alias="No")
    full_name: Optional[str] = Field(None, alias="FullName")
    first_name: Optional[str] = Field(None, alias="FirstName")
    last_name: Optional[str] = Field(None, alias="LastName")
    job_title: Optional[str] = Field(None, alias="JobTitle")
    department_code: Optional[str] = Field(None, alias="DepartmentCode")
    email: Optional[str] = Field(None, alias="Email")
    status: Optional[str] = Field(None, alias="Status")
    manager_no: Optional[str] = Field(None, alias="ManagerNo")


class LeaveType(ERPEntity):
    """Leave type setup.

    Maps to: /Company('...')/LeaveTypes
    """
    code: Optional[str] = Field(None, alias="Code")
    description: Optional[str] = Field(None, alias="Description")
    days: Optional[ERPDecimal] = Field(None, alias="Days")
    unlimited_days: Optional[bool] = Field(None, alias="Unlimited_Days")
    inclusive_of_saturday: Optional[bool] = Field(None, alias="Inclusive_of_Saturday")
    inclusive_of_sunday: Optional[bool] = Field(None, alias="Inclusive_of_Sunday")
    gender: Optional[str] = Field(None, alias="Gender")
    annual_leave: Optional[bool] = Field(None, alias="Annual_Leave")
    max_carry_forward_days: Optional[ERPDecimal] = Field(None, alias="Max_Carry_Forward_Days")


class LeaveApplication(ERPEntity):
    """Leave application header.

    Maps to: /Company('...')/Leave_Applications_List
    """
    application_no: Optional[str] = Field(None, alias="Application_No")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    employee_name: Optional[str] = Field(None, alias="Employee_Name")
    leave_code: Optional[str] = Field(None, alias="Leave_Code")
    days_applied: Optional[ERPDecimal] = Field(None, alias="Days_Applied")
    start_date: Optional[date] = Field(None, alias="Start_Date")
    end_date: Optional[date] = Field(None, alias="End_Date")
    resumption_date: Optional[date] = Field(None, alias="Resumption_Date")
    application_date: Optional[date] = Field(None, alias="Application_Date")
    status: Optional[str] = Field(None, alias="Status")
    balance_brought_forward: Optional[ERPDecimal] = Field(None, alias="Balance_brought_forward")
    leave_entitlement: Optional[ERPDecimal] = Field(None, alias="Leave_Entitlment")
    total_leave_days_taken: Optional[ERPDecimal] = Field(None, alias="Total_Leave_Days_Taken")
    leave_balance: Optional[ERPDecimal] = Field(None, alias="Leave_balance")
    duties_taken_over_by: Optional[str] = Field(None, alias="Duties_Taken_Over_By")
    reliever_name: Optional[str] = Field(None, alias="Name")
    mobile_no: Optional[str] = Field(None, alias="Mobile_No")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    department_name: Optional[str] = Field(None, alias="Department_Name")
    pending_approver: Optional[str] = Field(None, alias="Pending_Approver")
    reason: Optional[str] = Field(None, alias="Reason")
    telephone_no: Optional[str] = Field(None, alias="Telephone_No")
    alternate_phone_no: Optional[str] = Field(None, alias="Alternate_Phone_No")


class LeavePlan(ERPEntity):
    """Planned leave days for one employee and leave type over a fiscal year.

    Maps to: /Company('...')/Leave_Plan_List (reads),
             /Company('...')/Leave_Plan_Application (writes)
    """
    application_no: Optional[str] = Field(None, alias="Application_No")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    employee_name: Optional[str] = Field(None, alias="Employee_Name")
    designation: Optional[str] = Field(None, alias="Designation")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    date_of_joining_company: Optional[date] = Field(None, alias="Date_Of_Joining_Company")
    leave_code: Optional[str] = Field(None, alias="Leave_Code")
    fiscal_start_date: Optional[date] = Field(None, alias="Fiscal_Start_Date")
    maturity_date: Optional[date] = Field(None, alias="Maturity_Date")
    leave_entitlement: Optional[ERPDecimal] = Field(None, alias="Leave_Entitlement")
    leave_earned_to_date: Optional[ERPDecimal] = Field(None, alias="Leave_Earned_to_Date")
    leave_balance: Optional[ERPDecimal] = Field(None, alias="Leave_Balance")
    days_in_plan: Optional[ERPDecimal] = Field(None, alias="Days_in_Plan")
    off_days: Optional[ERPDecimal] = Field(None, alias="Off_Days")
    user_id: Optional[str] = Field(None, alias="User_ID")
    application_date: Optional[date] = Field(None, alias="Application_Date")
    status: Optional[str] = Field(None, alias="Status")
    no_series: Optional[str] = Field(None, alias="No_series")


# =============================================================================
# Performance Appraisal
# =============================================================================

class AppraisalLine(ERPEntity):
    """One key performance indicator scored within an appraisal.

    Maps to: /Company('...')/AppraisalLines (compound key Appraisal_No, Line_No)
    """
    appraisal_no: Optional[str] = Field(None, alias="Appraisal_No")
    line_no: Optional[int] = Field(None, alias="Line_No")
    performance_target_no: Optional[str] = Field(None, alias="Performance_Target_No")
    key_performance_area: Optional[str] = Field(None, alias="Key_Performance_Area")
    key_performance_indicator: Optional[str] = Field(None, alias="Key_Performance_Indicator")
    performance_measure: Optional[str] = Field(None, alias="Performance_Measure")
    target: Optional[str] = Field(None, alias="Target")
    maximum_weighting: Optional[ERPDecimal] = Field(None, alias="Maximum_Weighting")
    employee_score: Optional[ERPDecimal] = Field(None, alias="Employee_Score")
    supervisor_score: Optional[ERPDecimal] = Field(None, alias="Supervisor_Score")
    agreed_score: Optional[ERPDecimal] = Field(None, alias="Agreed_Score")
    employee_remarks: Optional[str] = Field(None, alias="Employee_Remarks")
    supervisor_remarks: Optional[str] = Field(None, alias="Supervisor_Remarks")
    agreed_remarks: Optional[str] = Field(None, alias="Agreed_Remarks")


class Appraisal(ERPEntity):
    """Performance appraisal header with its lines.

    Maps to: /Company('...')/Appraisals?$expand=AppraisalLines
    """
    appraisal_no: Optional[str] = Field(None, alias="AppraisalNo")
    employee_no: Optional[str] = Field(None, alias="EmployeeNo")
    appraisee_name: Optional[str] = Field(None, alias="AppraiseeName")
    appraisee_job_title: Optional[str] = Field(None, alias="AppraiseeJobTitle")
    department_code: Optional[str] = Field(None, alias="DepartmentCode")
    appraiser_no: Optional[str] = Field(None, alias="AppraiserNo")
    appraiser_name: Optional[str] = Field(None, alias="AppraiserName")
    status: Optional[str] = Field(None, alias="Status")
    appraisal_type: Optional[str] = Field(None, alias="AppraisalType")
    appraisal_period: Optional[str] = Field(None, alias="AppraisalPeriod")
    total_score_employee: Optional[ERPDecimal] = Field(None, alias="TotalScoreEmployee")
    total_score_supervisor: Optional[ERPDecimal] = Field(None, alias="TotalScoreSupervisor")
    total_score_agreed: Optional[ERPDecimal] = Field(None, alias="TotalScoreAgreed")
    total_maximum_score: Optional[ERPDecimal] = Field(None, alias="TotalMaximumScore")
    overall_rating: Optional[ERPDecimal] = Field(None, alias="OverallRating")
    performance_category: Optional[str] = Field(None, alias="PerformanceCategory")
    employee_comments: Optional[str] = Field(None, alias="EmployeeComments")
    appraiser_comments: Optional[str] = Field(None, alias="AppraiserComments")
    agreed_comments: Optional[str] = Field(None, alias="AgreedComments")
    created_date: Optional[date] = Field(None, alias="CreatedDate")
    submitted_date: Optional[date] = Field(None, alias="SubmittedDate")
    appraisal_start_date: Optional[date] = Field(None, alias="AppraisalStartDate")
    appraised_date: Optional[date] = Field(None, alias="AppraisedDate")
    agreement_start_date: Optional[date] = Field(None, alias="AgreementStartDate")
    agreed_date: Optional[date] = Field(None, alias="AgreedDate")
    completed_date: Optional[date] = Field(None, alias="CompletedDate")
    effective_date: Optional[date] = Field(None, alias="EffectiveDate")
    lines: List[AppraisalLine] = Field(default_factory=list, alias="AppraisalLines")


class PerformanceTargetLine(ERPEntity):
    """One weighted objective within a performance target.

    Maps to: /Company('...')/PerformanceTargetLines (compound key Objective_No, Line_No)
    """
    objective_no: Optional[str] = Field(None, alias="Objective_No")
    line_no: Optional[int] = Field(None, alias="Line_No")
    key_performance_area: Optional[str] = Field(None, alias="Key_Performance_Area")
    key_performance_indicator: Optional[str] = Field(None, alias="Key_Performance_Indicator")
    performance_measure: Optional[str] = Field(None, alias="Performance_Measure")
    target: Optional[str] = Field(None, alias="Target")
    weighting: Optional[ERPDecimal] = Field(None, alias="Weighting")
    timeline: Optional[str] = Field(None, alias="Timeline")
    resources_required: Optional[str] = Field(None, alias="Resources_Required")
    success_criteria: Optional[str] = Field(None, alias="Success_Criteria")
    remarks: Optional[str] = Field(None, alias="Remarks")


class PerformanceTarget(ERPEntity):
    """Objectives agreed between an appraisee and appraiser for a period.

    Maps to: /Company('...')/PerformanceTargets?$expand=PerformanceTargetLines
    """
    objective_no: Optional[str] = Field(None, alias="Objective_No")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    appraisee_name: Optional[str] = Field(None, alias="Appraisee_Name")
    appraisee_id: Optional[str] = Field(None, alias="Appraisee_ID")
    appraisee_job_id: Optional[str] = Field(None, alias="Appraisee_Job_ID")
    appraisee_job_title: Optional[str] = Field(None, alias="Appraisee_Job_Title")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    department_name: Optional[str] = Field(None, alias="Department_Name")
    appraiser_no: Optional[str] = Field(None, alias="Appraiser_No")
    appraiser_name: Optional[str] = Field(None, alias="Appraiser_Name")
    appraiser_job_title: Optional[str] = Field(None, alias="Appraiser_Job_Title")
    status: Optional[str] = Field(None, alias="Status")
    appraisal_category: Optional[str] = Field(None, alias="Appraisal_Category")
    appraisal_period: Optional[str] = Field(None, alias="Appraisal_Period")
    agreed_performance_category: Optional[str] = Field(None, alias="Agreed_Performance_Category")
    approved: Optional[bool] = Field(None, alias="Approved")
    created_date: Optional[date] = Field(None, alias="Created_Date")
    submitted_date: Optional[date] = Field(None, alias="Submitted_Date")
    approved_date: Optional[date] = Field(None, alias="Approved_Date")
    remarks: Optional[str] = Field(None, alias="Remarks")
    lines: List[PerformanceTargetLine] = Field(default_factory=list, alias="PerformanceTargetLines")


# =============================================================================
# Assets
# =============================================================================

class FixedAsset(ERPEntity):
    """Fixed asset card.

    Maps to: /Company('...')/FixedAssets
    """
    no: Optional[str] = Field(None, alias="No")
    description: Optional[str] = Field(None, alias="Description")
    fixed_asset_class_code: Optional[str] = Field(None, alias="FixedAssetClassCode")
    tangible_intangible: Optional[str] = Field(None, alias="TangibleIntangible")
    location: Optional[str] = Field(None, alias="Location")
    serial_no: Optional[str] = Field(None, alias="SerialNo")
    tag_no: Optional[str] = Field(None, alias="TagNo")
    responsible_employee: Optional[str] = Field(None, alias="ResponsibleEmployee")
    department_code: Optional[str] = Field(None, alias="DepartmentCode")
    active: Optional[bool] = Field(None, alias="Active")
    acq_date: Optional[date] = Field(None, alias="AcqDate")
    acquisition_cost: Optional[ERPDecimal] = Field(None, alias="AcquisitionCost")
    book_value: Optional[ERPDecimal] = Field(None, alias="BookValue")


class AssetRepair(ERPEntity):
    """Asset maintenance/repair request.

    Maps to: /Company('...')/AssetRepairs
    """
    maintenance_ref_no: Optional[str] = Field(None, alias="MaintenanceRefNo")
    employee_no: Optional[str] = Field(None, alias="EmployeeNo")
    employee_name: Optional[str] = Field(None, alias="EmployeeName")
    job_title: Optional[str] = Field(None, alias="JobTitle")
    department: Optional[str] = Field(None, alias="Department")
    asset_no: Optional[str] = Field(None, alias="AssetNo")
    asset_name: Optional[str] = Field(None, alias="AssetName")
    maintenance_issue: Optional[str] = Field(None, alias="MaintenanceIssue")
    maintenance_details: Optional[str] = Field(None, alias="MaintenanceDetails")
    maintenance_status: Optional[str] = Field(None, alias="MaintenanceStatus")
    repair_priority: Optional[str] = Field(None, alias="RepairPriority")
    reported_date: Optional[date] = Field(None, alias="ReportedDate")
    completed_date: Optional[date] = Field(None, alias="CompletedDate")
    estimated_cost: Optional[ERPDecimal] = Field(None, alias="EstimatedCost")
    actual_cost: Optional[ERPDecimal] = Field(None, alias="ActualCost")
    assigned_technician: Optional[str] = Field(None, alias="AssignedTechnician")
    resolution_details: Optional[str] = Field(None, alias="ResolutionDetails")
    remarks: Optional[str] = Field(None, alias="Remarks")


# =============================================================================
# Facilities and Fleet
# =============================================================================

class MeetingRoom(ERPEntity):
    """Bookable meeting room.

    Maps to: /Company('...')/Available_Meeting_Rooms
    """
    room_no: Optional[str] = Field(None, alias="Room_No")
    room_name: Optional[str] = Field(None, alias="Room_Name")
    room_status: Optional[str] = Field(None, alias="Room_Status")
    room_capacity: Optional[int] = Field(None, alias="Room_Capacity")
    location: Optional[str] = Field(None, alias="Location")


class RoomBooking(ERPEntity):
    """Meeting room booking.

    Maps to: /Company('...')/Meeting_Room_Bookings
    """
    booking_no: Optional[str] = Field(None, alias="Booking_No")
    room_no: Optional[str] = Field(None, alias="Room_No")
    room_name: Optional[str] = Field(None, alias="Room_Name")
    room_capacity: Optional[int] = Field(None, alias="Room_Capacity")
    no_of_participants: Optional[int] = Field(None, alias="No_of_Participants")
    booking_date: Optional[date] = Field(None, alias="Booking_Date")
    start_time: Optional[str] = Field(None, alias="Start_Time")
    end_time: Optional[str] = Field(None, alias="End_Time")
    duration: Optional[ERPDecimal] = Field(None, alias="Duration")
    status: Optional[str] = Field(None, alias="Status")
    remarks: Optional[str] = Field(None, alias="Remarks")
    special_request: Optional[str] = Field(None, alias="Special_Request")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    employee_name: Optional[str] = Field(None, alias="Employee_Name")
    purpose: Optional[str] = Field(None, alias="Purpose")


class FleetVehicle(ERPEntity):
    """Fleet vehicle card.

    Maps to: /Company('...')/Fleet_List
    """
    no: Optional[str] = Field(None, alias="No")
    description: Optional[str] = Field(None, alias="Description")
    registration_no: Optional[str] = Field(None, alias="Registration_No")
    vehicle_type: Optional[str] = Field(None, alias="Vehicle_Type")
    capacity: Optional[int] = Field(None, alias="Capacity")
    fuel_type: Optional[str] = Field(None, alias="Fuel_Type")
    status: Optional[str] = Field(None, alias="Status")
    responsible_employee: Optional[str] = Field(None, alias="Responsible_Employee")
    current_location: Optional[str] = Field(None, alias="Current_Location")


class TransportRequest(ERPEntity):
    """Transport request for official travel.

    Maps to: /Company('...')/Transport_Requests
    """
    request_no: Optional[str] = Field(None, alias="Request_No")
    request_date: Optional[date] = Field(None, alias="Request_Date")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    employee_name: Optional[str] = Field(None, alias="Employee_Name")
    purpose_of_travel: Optional[str] = Field(None, alias="Purpose_of_Travel")
    destination_itinerary: Optional[str] = Field(None, alias="Destination_Itinerary")
    trip_planned_start_date: Optional[date] = Field(None, alias="Trip_Planned_Start_Date")
    trip_planned_end_date: Optional[date] = Field(None, alias="Trip_Planned_End_Date")
    start_time: Optional[str] = Field(None, alias="Start_Time")
    return_time: Optional[str] = Field(None, alias="Return_Time")
    no_of_employees_travelling: Optional[int] = Field(None, alias="No_of_Employees_Travelling")
    number_of_passengers: Optional[int] = Field(None, alias="Number_of_Passengers")
    status: Optional[str] = Field(None, alias="Status")
    vehicle_allocated: Optional[str] = Field(None, alias="Vehicle_Allocated")
    vehicle_description: Optional[str] = Field(None, alias="Vehicle_Description")
    driver: Optional[str] = Field(None, alias="Driver")
    driver_name: Optional[str] = Field(None, alias="Driver_Name")
    odometer_reading_before: Optional[ERPDecimal] = Field(None, alias="Odometer_Reading_Before")
    odometer_reading_after: Optional[ERPDecimal] = Field(None, alias="Odometer_Reading_After")


class VehicleMaintenance(ERPEntity):
    """Vehicle maintenance document.

    Maps to: /Company('...')/VehicleMaintenance
    """
    no: Optional[str] = Field(None, alias="No")
    document_type: Optional[str] = Field(None, alias="Document_Type")
    fa_code_no: Optional[str] = Field(None, alias="FA_Code_No")
    vehicle_registration_no: Optional[str] = Field(None, alias="Vehicle_Registration_No")
    description: Optional[str] = Field(None, alias="Description")
    maintenance_date: Optional[date] = Field(None, alias="Maintenance_Date")
    status: Optional[str] = Field(None, alias="Status")
    maintenance_type: Optional[str] = Field(None, alias="Maintenance_Type")
    pre_service_mileage: Optional[ERPDecimal] = Field(None, alias="Pre_Service_Mileage")
    post_service_mileage: Optional[ERPDecimal] = Field(None, alias="Post_Service_Mileage")
    total_repair_cost: Optional[ERPDecimal] = Field(None, alias="Total_Repair_Cost")
    total_maintenance_cost: Optional[ERPDecimal] = Field(None, alias="Total_Maintenance_Cost")
    total_cost: Optional[ERPDecimal] = Field(None, alias="Total_Cost")
    maintenance_vendor_no: Optional[str] = Field(None, alias="Maintenance_Vendor_No")
    vendor_name: Optional[str] = Field(None, alias="Vendor_Name")
    service_description: Optional[str] = Field(None, alias="Service_Description")
    next_service_date: Optional[date] = Field(None, alias="Next_Service_Date")
    next_service_mileage: Optional[ERPDecimal] = Field(None, alias="Next_Service_Mileage")
    completion_date: Optional[date] = Field(None, alias="Completion_Date")
    remarks: Optional[str] = Field(None, alias="Remarks")
    created_by: Optional[str] = Field(None, alias="Created_By")


# =============================================================================
# Training
# =============================================================================

class TrainingRequest(ERPEntity):
    """Training request.

    Maps to: /Company('...')/Training_Request_List (reads),
             /Company('...')/Training_Request_Application (writes)
    """
    request_no: Optional[str] = Field(None, alias="Request_No")
    request_date: Optional[date] = Field(None, alias="Request_Date")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    requested_by: Optional[str] = Field(None, alias="Requested_By")
    job_position: Optional[str] = Field(None, alias="Job_Position")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    department_name: Optional[str] = Field(None, alias="Department_Name")
    status: Optional[str] = Field(None, alias="Status")
    course_title: Optional[str] = Field(None, alias="Course_Title")
    training_institution: Optional[str] = Field(None, alias="Training_Institution")
    training_type: Optional[str] = Field(None, alias="Training_Type")
    training_mode: Optional[str] = Field(None, alias="Training_Mode")
    start_date: Optional[date] = Field(None, alias="Start_Date")
    end_date: Optional[date] = Field(None, alias="End_Date")
    course_duration: Optional[str] = Field(None, alias="Course_Duration")
    estimated_cost: Optional[ERPDecimal] = Field(None, alias="Estimated_Cost")
    self_funded: Optional[bool] = Field(None, alias="Self_Funded")
    sponsoring_body: Optional[str] = Field(None, alias="Sponsoring_Body")
    highest_academic_qualification: Optional[str] = Field(None, alias="Highest_Academic_Qualification")
    currently_pursuing_training: Optional[bool] = Field(None, alias="Currently_Pursuing_Training")
    justification: Optional[str] = Field(None, alias="Justification")
    expected_outcomes: Optional[str] = Field(None, alias="Expected_Outcomes")
    converted_to_plan: Optional[bool] = Field(None, alias="Converted_To_Plan")


class TrainingEvaluation(ERPEntity):
    """Post-training evaluation.

    Maps to: /Company('...')/Training_Evaluation_List (reads),
             /Company('...')/Training_Evaluation_Application (writes)
    """
    evaluation_no: Optional[str] = Field(None, alias="Evaluation_No")
    evaluation_date: Optional[date] = Field(None, alias="Evaluation_Date")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    employee_name: Optional[str] = Field(None, alias="Employee_Name")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    training_code: Optional[str] = Field(None, alias="Training_Code")
    course_title: Optional[str] = Field(None, alias="Course_Title")
    planned_start_date: Optional[date] = Field(None, alias="Planned_Start_Date")
    planned_end_date: Optional[date] = Field(None, alias="Planned_End_Date")
    no_of_days: Optional[ERPDecimal] = Field(None, alias="No_of_Days")
    venue: Optional[str] = Field(None, alias="Venue")
    status: Optional[str] = Field(None, alias="Status")
    overall_rating: Optional[int] = Field(None, alias="Overall_Rating")
    trainer_effectiveness: Optional[str] = Field(None, alias="Trainer_Effectiveness")
    content_relevance: Optional[str] = Field(None, alias="Content_Relevance")
    training_materials: Optional[str] = Field(None, alias="Training_Materials")
    training_facilities: Optional[str] = Field(None, alias="Training_Facilities")
    training_duration: Optional[str] = Field(None, alias="Training_Duration")
    met_objectives: Optional[bool] = Field(None, alias="Met_Objectives")
    would_recommend: Optional[bool] = Field(None, alias="Would_Recommend")
    what_liked_most: Optional[str] = Field(None, alias="What_Liked_Most")
    what_could_improve: Optional[str] = Field(None, alias="What_Could_Improve")
    additional_comments: Optional[str] = Field(None, alias="Additional_Comments")
    skill_improvement_rating: Optional[int] = Field(None, alias="Skill_Improvement_Rating")
    applicable_to_work: Optional[str] = Field(None, alias="Applicable_to_Work")
    implementation_plan: Optional[str] = Field(None, alias="Implementation_Plan")
    expected_impact: Optional[str] = Field(None, alias="Expected_Impact")


# =============================================================================
# Incidents and Recruitment
# =============================================================================

class Incident(ERPEntity):
    """Workplace incident report.

    Maps to: /Company('...')/Incident_Management_List (reads),
             /Company('...')/Incident_Management_Application (writes)
    """
    incident_reference: Optional[str] = Field(None, alias="Incident_Reference")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    employee_name: Optional[str] = Field(None, alias="Employee_Name")
    job_title: Optional[str] = Field(None, alias="Job_Title")
    department: Optional[str] = Field(None, alias="Department")
    incident_status: Optional[str] = Field(None, alias="Incident_Status")
    incident_description: Optional[str] = Field(None, alias="Incident_Description")
    incident_date: Optional[date] = Field(None, alias="Incident_Date")
    incident_time: Optional[str] = Field(None, alias="Incident_Time")
    incidence_location_name: Optional[str] = Field(None, alias="Incidence_Location_Name")
    incident_type: Optional[str] = Field(None, alias="Incident_Type")


class JobRequisition(ERPEntity):
    """Staff requisition raised by a department.

    Maps to: /Company('...')/Job_Requisition_List (reads),
             /Company('...')/Job_Requisition_Application (writes)
    """
    application_no: Optional[str] = Field(None, alias="Application_No")
    document_date: Optional[date] = Field(None, alias="Document_Date")
    job_id: Optional[str] = Field(None, alias="Job_ID")
    job_position: Optional[str] = Field(None, alias="Job_Position")
    employment_type: Optional[str] = Field(None, alias="Employment_Type")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    directorate_name: Optional[str] = Field(None, alias="Directorate_Name")
    reason_for_recruitment: Optional[str] = Field(None, alias="Reason_for_Recruitment")
    positions: Optional[int] = Field(None, alias="Positions")
    job_grade: Optional[str] = Field(None, alias="Job_Grade")
    gross_salary: Optional[ERPDecimal] = Field(None, alias="Gross_Salary")
    contract_period: Optional[str] = Field(None, alias="Contract_Period")
    has_gratuity: Optional[bool] = Field(None, alias="Has_Gratuity")
    application_start_date: Optional[date] = Field(None, alias="Application_Start_Date")
    application_deadline: Optional[date] = Field(None, alias="Application_Deadline")
    expected_reporting_date: Optional[date] = Field(None, alias="Expected_Reporting_Date")
    requested_by: Optional[str] = Field(None, alias="Requested_By")
    status: Optional[str] = Field(None, alias="Status")
    shortlisting_required: Optional[bool] = Field(None, alias="ShortListing_Required")
    shortlisting_threshold: Optional[int] = Field(None, alias="Shortlisting_Threshold")
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    raised_by: Optional[str] = Field(None, alias="Raised_By")
    posted: Optional[bool] = Field(None, alias="Posted")


# =============================================================================
# Help Desk
# =============================================================================

class HelpDeskTicket(ERPEntity):
    """Support request raised with IT, HR, finance or facilities.

    Maps to: /Company('...')/HelpDeskTickets
    """
    ticket_no: Optional[str] = Field(None, alias="TicketNo")
    employee_no: Optional[str] = Field(None, alias="EmployeeNo")
    employee_name: Optional[str] = Field(None, alias="EmployeeName")
    shortcut_dimension_3_code: Optional[str] = Field(None, alias="ShortcutDimension3Code")
    location: Optional[str] = Field(None, alias="Location")
    description: Optional[str] = Field(None, alias="Description")
    category: Optional[str] = Field(None, alias="Category")
    priority: Optional[str] = Field(None, alias="Priority")
    status: Optional[str] = Field(None, alias="Status")
    created_date: Optional[date] = Field(None, alias="CreatedDate")
    created_time: Optional[str] = Field(None, alias="CreatedTime")
    assigned_to: Optional[str] = Field(None, alias="AssignedTo")
    assigned_to_name: Optional[str] = Field(None, alias="AssignedToName")
    resolution_date: Optional[date] = Field(None, alias="ResolutionDate")
    resolution_time: Optional[str] = Field(None, alias="ResolutionTime")
    resolution_notes: Optional[str] = Field(None, alias="ResolutionNotes")
    department_code: Optional[str] = Field(None, alias="DepartmentCode")
    contact_email: Optional[str] = Field(None, alias="ContactEmail")
    contact_phone: Optional[str] = Field(None, alias="ContactPhone")
    attachments: Optional[str] = Field(None, alias="Attachments")
    last_modified_date: Optional[date] = Field(None, alias="LastModifiedDate")
    last_modified_time: Optional[str] = Field(None, alias="LastModifiedTime")
