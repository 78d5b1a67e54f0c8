# Matches played in each knockout round; field sizes follow from the team size.
SEMI_FINAL_MATCHES = 2
FINAL_MATCHES = 1
GRAND_FINAL_MATCHES = 1

# Sides per match.
TEAMS_PER_MATCH = 2
