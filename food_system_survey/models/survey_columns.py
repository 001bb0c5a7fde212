"""
Column identifiers of the survey export, in the normalized form the parser produces.
"""


ORGANIZATION_NAME = "Organization_Name"
SECTOR = "Sector"
WEBSITE = "Website"
PRIMARY_DISTRICT = "Primary_Supervisorial_District__based_on_headquarters_address_"
SERVED_DISTRICTS = "Other_Supervisorial_District_s__Served__all_districts_where_programs_and_services_are_provided_"
GOALS = "Which_of_the_following_LA_County_Roundtable_Action_Plan_GOALS_does_your_organization_help_advance__mark_all_that_apply_"
OBJECTIVES = "Which_of_the_following_LA_County_Roundtable_Action_Plan_OBJECTIVES_does_your_organization_help_advance__mark_all_that_apply_"
PRIMARY_GOAL = "If_you_had_to_choose_the_goal_MOST_aligned_with_your_organization__which_one_would_it_be_"
ACTIVITIES = "How_would_you_describe_the_activities_of_your_organization_check_all_that_apply_as_related_to_the_food_system_"
CHALLENGES = "What_are_the_biggest_challenges_your_organization_faces_in_collaborating_with_others_in_the_food_system__Select_up_to_3_"
CAPACITY_NEEDS = "What_types_of_capacity_building_tools_or_support_would_be_most_helpful__Select_up_to_3_"

# Headquarters and contact columns used by the geocoding run
STREET_ADDRESS = "Main_Org_Street_Address__headquarters_"
ZIP_CODE = "Main_Org_Zip_Code"
MISSION = "Organization_Mission_Statement"
PRIMARY_ACTIVITY = "Provide_one_sentence_descriptor_of_your_primary_activity"
PRIMARY_SPA = "Primary_SPA__service_planning_area__Based_on_headquarters_address_"
ADDITIONAL_SPAS = ("Additional_SPA_s___service_planning_area__Served__all_districts_where_programs_"
                   "and_services_are_provided____Mark_any_or_all")
EMAIL = "Email_Address"
CONTACT_NAME = "Your_Name__First_Last_"

# Earlier exports spell some headers differently; each alias normalizes to a different identifier
ALIASES = {
    SERVED_DISTRICTS: ("Other_Supervisorial_District_s__Served_all_districts_where_programs_and_services_are_provided_",),
}


def read_column(record, column: str) -> str:
    """
    Return a record's value for a column, trying its known aliases in turn.

    The first non-empty value wins; a column absent under every spelling reads as "".
    """
    for name in (column,) + ALIASES.get(column, ()):
        value = record.get(name)
        if value:
            return value if isinstance(value, str) else str(value)
    return ""
