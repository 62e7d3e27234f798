# owner id of the medium surrounding all cells
BACKGROUND = 0

# fraction of the critical volume a cell must reach to leave G1 and G2
GROWTH_CHECKPOINT_G1 = 1.9
GROWTH_CHECKPOINT_G2 = 1.98

# proliferating cells grow their target toward this multiple of the critical volume
SIZE_TARGET = 2

# autotic cells shrink their target toward this multiple of the critical volume
AUTOSIS_SIZE_TARGET = 0.5

# late death phases release the cell once it is below this fraction of the critical volume
REMOVAL_CHECKPOINT = 0.1

# maximum relative size difference between the two halves of a division
BALANCE_DIFFERENCE = 0.05

# initial persistence vector component along the migration axis
PERSISTENCE_INITIAL = -1.0
